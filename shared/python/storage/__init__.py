"""
Storage utilities for Drive Courier.

Provides:
- JsonMappingStore: durable folder-mapping document (atomic snapshot writes)
- MinioStorageBackend: monitored folders on S3-compatible object storage
- write_json_atomic / read_json: JSON document helpers
"""

from .json_file import read_json, write_json_atomic
from .mapping_store import JsonMappingStore, MappingRepository
from .minio_backend import MinioStorageBackend

__all__ = [
    "JsonMappingStore",
    "MappingRepository",
    "MinioStorageBackend",
    "read_json",
    "write_json_atomic",
]
