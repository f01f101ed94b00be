import errno

import pytest

from gallery_pipeline.core.exceptions import (
    ConfigurationError,
    DecodeError,
    GalleryPipelineError,
    ImageProcessingError,
    MissingCapabilityError,
    OutputWriteError,
    UnsupportedFormatError,
    output_error_handler,
)


@pytest.mark.parametrize(
    "error_class",
    [
        UnsupportedFormatError,
        DecodeError,
        MissingCapabilityError,
        ImageProcessingError,
        OutputWriteError,
        ConfigurationError,
    ],
)
def test_errors_share_base_class(error_class) -> None:
    assert issubclass(error_class, GalleryPipelineError)


def test_output_error_handler_wraps_os_error() -> None:
    with pytest.raises(OutputWriteError, match="Failed to write /gallery/a.jpg") as excinfo:
        with output_error_handler("/gallery/a.jpg"):
            raise PermissionError(errno.EACCES, "Permission denied")

    assert isinstance(excinfo.value.__cause__, PermissionError)


def test_output_error_handler_leaves_other_errors() -> None:
    with pytest.raises(KeyError):
        with output_error_handler("/gallery/a.jpg"):
            raise KeyError("not a filesystem error")
