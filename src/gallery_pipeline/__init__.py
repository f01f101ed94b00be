"""Gallery derivative pipeline: thumbnails, previews and metadata for a photo tree."""

__version__ = "0.1.0"
