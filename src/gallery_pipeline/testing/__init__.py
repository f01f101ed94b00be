"""Testing utilities and fakes for the gallery pipeline."""

from .fakes import (
    FakeBackend,
    FakeImage,
    FakeLogger,
    create_test_image,
    setup_test_source_tree,
)

__all__ = [
    "FakeBackend",
    "FakeImage",
    "FakeLogger",
    "create_test_image",
    "setup_test_source_tree",
]
