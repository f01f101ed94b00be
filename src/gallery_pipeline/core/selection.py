"""Per-asset backend selection policy."""

from typing import List, Optional, Tuple

from .exceptions import DecodeError, MissingCapabilityError, UnsupportedFormatError
from .image_utils import is_heif
from .logging_config import get_logger
from .models import BackendMode
from .protocols import DecodedImageProtocol, ImageBackend


class BackendSelector:
    """
    Chooses which backend(s) decode an asset.

    | mode         | HEIC/HEIF                  | other formats              |
    |--------------|----------------------------|----------------------------|
    | fast-only    | UnsupportedFormatError     | fast; failure is fatal     |
    | general-only | general                    | general                    |
    | auto         | general, else missing cap. | fast, then general on fail |
    """

    def __init__(
        self,
        mode: BackendMode = BackendMode.AUTO,
        fast: Optional[ImageBackend] = None,
        general: Optional[ImageBackend] = None,
    ):
        self.mode = BackendMode(mode)
        self.fast = fast
        self.general = general
        self._logger = get_logger("selection")

    def candidates(self, content_type: str) -> List[ImageBackend]:
        """Ordered backends to try for ``content_type``."""
        if self.mode == BackendMode.FAST_ONLY:
            if is_heif(content_type):
                raise UnsupportedFormatError(
                    f"{content_type} is not supported in fast-only mode"
                )
            return [self._require(self.fast, "fast", content_type)]

        if self.mode == BackendMode.GENERAL_ONLY or is_heif(content_type):
            return [self._require(self.general, "general", content_type)]

        backends = [
            backend
            for backend in (self.fast, self.general)
            if backend is not None and backend.supports(content_type)
        ]
        if not backends:
            if self.fast is None and self.general is None:
                raise MissingCapabilityError("No decode backend is available")
            raise UnsupportedFormatError(f"No installed backend can decode {content_type}")
        return backends

    def decode(
        self, data: bytes, content_type: str
    ) -> Tuple[ImageBackend, DecodedImageProtocol]:
        """Decode with the first candidate that succeeds.

        Returns the backend that decoded the image together with the image.
        """
        candidates = self.candidates(content_type)
        last_error: Optional[DecodeError] = None

        for index, backend in enumerate(candidates):
            try:
                return backend, backend.decode(data)
            except DecodeError as exc:
                last_error = exc
                if index + 1 < len(candidates):
                    self._logger.warning(
                        f"{backend.name} backend failed to decode {content_type} ({exc}); "
                        f"falling back to {candidates[index + 1].name} backend"
                    )

        assert last_error is not None
        raise last_error

    def _require(
        self, backend: Optional[ImageBackend], role: str, content_type: str
    ) -> ImageBackend:
        if backend is None:
            raise MissingCapabilityError(
                f"{content_type} requires the {role} backend, which is not available"
            )
        if not backend.supports(content_type):
            if is_heif(content_type):
                raise MissingCapabilityError(
                    f"{content_type} requires HEIF support in the {role} backend"
                )
            raise UnsupportedFormatError(f"The {role} backend cannot decode {content_type}")
        return backend
