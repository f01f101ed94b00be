"""Source tree discovery."""

import os
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Tuple

from .image_utils import content_type_for
from .models import PipelineConfig, SourceAsset
from .protocols import AssetDiscoveryService, LoggerProtocol


class DirectoryWalker(AssetDiscoveryService):
    """Walks ``<source_root>/<year>/<month>/<filename>.<ext>``.

    ``walk()`` is a lazy generator and performs a fresh walk each time it is
    called. Files that are skipped (disallowed extension or no year/month
    directories) are logged and collected in ``skipped`` as
    ``(relative_path, reason)`` pairs.
    """

    def __init__(self, config: PipelineConfig, logger: LoggerProtocol):
        self._root = Path(config.source_root)
        self._allowed = config.allowed_extensions
        self._logger = logger
        self.skipped: List[Tuple[str, str]] = []

    def walk(self) -> Iterator[SourceAsset]:
        self.skipped = []
        self._logger.debug(f"Discovering files in {self._root}")

        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in sorted(filenames):
                if filename.startswith("."):
                    continue
                path = Path(dirpath) / filename
                if not path.is_file():
                    continue
                asset = self._to_asset(path)
                if asset is not None:
                    yield asset

    def _to_asset(self, path: Path) -> Optional[SourceAsset]:
        relative = PurePosixPath(path.relative_to(self._root).as_posix())
        parts = relative.parts

        if len(parts) < 3:
            self._logger.warning(f"Skipped file outside a year/month directory: {relative}")
            self.skipped.append((str(relative), "not inside a year/month directory"))
            return None

        extension = relative.suffix.lower().lstrip(".")
        if extension not in self._allowed:
            self._logger.warning(f"Skipped non-allowed type: {relative}")
            self.skipped.append((str(relative), f"extension .{extension} is not allowed"))
            return None

        return SourceAsset(
            path=path,
            relative_path=str(relative),
            year=parts[0],
            month=parts[1],
            stem=relative.stem,
            extension=extension,
            content_type=content_type_for(extension),
        )
