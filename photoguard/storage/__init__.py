"""
Storage module: image storage boundary.

Public API:
- ImageStore: fetch, delete and save image files
- get_image_store: Singleton accessor function
"""

from photoguard.storage.images import (
    ImageStore,
    get_image_store,
    is_remote,
    preview,
)

__all__ = [
    "ImageStore",
    "get_image_store",
    "is_remote",
    "preview",
]
