"""Service layer for the video platform API.

Provides service classes that encapsulate the upload REST endpoints.
"""

from __future__ import annotations

from .base import BaseService
from .batch import BatchUploadService
from .uploads import UploadService

__all__ = [
    "BaseService",
    "BatchUploadService",
    "UploadService",
]
