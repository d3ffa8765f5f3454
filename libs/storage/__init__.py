"""Blob storage adapters for note attachments."""

from .blob_storage import LocalBlobStorage, validate_object_key

__all__ = ["LocalBlobStorage", "validate_object_key"]
