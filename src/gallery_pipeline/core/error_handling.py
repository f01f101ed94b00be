# src/gallery_pipeline/core/error_handling.py

import functools
import logging

import cv2
from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError, GalleryPipelineError, ImageProcessingError

DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    cv2.error,
    OSError,
    SyntaxError,
    ValueError,
)


def with_error_handling(func):
    """
    A decorator for backend operations that turns library errors into typed
    pipeline errors.

    Failures inside ``decode`` become DecodeError so the selector can fall
    back to another backend; failures in any other image operation become
    ImageProcessingError.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except GalleryPipelineError:
            raise
        except Exception as e:
            logger.debug(f"Error in '{func.__qualname__}': {e}", exc_info=True)
            if func.__name__ == 'decode' and isinstance(e, DECODE_ERRORS):
                raise DecodeError(f"Failed to decode image in {func.__qualname__}: {e}") from e
            raise ImageProcessingError(f"Image operation failed in {func.__qualname__}: {e}") from e
    return wrapper


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize per-asset errors.
    """
    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.errors = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for item '{error_detail['item']}': "
                    f"[{error_detail['type']}] {error_detail['error']}"
                )
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        elif not self.errors:
            self.logger.info(f"{self.operation_name} completed successfully.")

        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item",
                  error_type: str = "Error"):
        """
        Report an error for a specific item from within the 'with' block.

        Args:
            error_message (str): The error message or exception string.
            item_identifier (str): The asset that failed (root-relative path).
            error_type (str): Name of the typed failure.
        """
        self.errors.append(
            {"item": item_identifier, "error": str(error_message), "type": error_type}
        )
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")
