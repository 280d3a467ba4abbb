"""
MinIO Storage Backend - shared folders on S3-compatible object storage.

A "folder" is an object prefix inside one bucket (e.g. "reports/team-a").
Only direct children of the prefix are considered; sub-folders are not
walked. Eligible files are those whose extension is in the configured
spreadsheet set.

File identity is "<object name>@<etag>", so overwriting an object with new
content under the same name counts as a new file.

The minio client is blocking; every call runs in a worker thread via
asyncio.to_thread so poll cycles for other folders keep running.
"""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

from minio import Minio
from minio.error import S3Error

from config.constants import MimeTypes
from models import RemoteFile

logger = logging.getLogger(__name__)


def folder_prefix(folder_id: str) -> str:
    """Normalize a folder id to an object prefix ending in '/'."""
    return folder_id.strip().strip("/") + "/"


def make_file_id(object_name: str, etag: Optional[str]) -> str:
    clean_etag = (etag or "").strip('"')
    return f"{object_name}@{clean_etag}"


def object_name_from_file_id(file_id: str) -> str:
    """Strip the etag suffix from a file id."""
    object_name, sep, _ = file_id.rpartition("@")
    return object_name if sep else file_id


class MinioStorageBackend:
    """
    StorageBackend implementation over a MinIO bucket.

    Usage:
        client = Minio("minio:9000", access_key="...", secret_key="...", secure=False)
        backend = MinioStorageBackend(client, "shared-drive", [".xlsx", ".csv"])
        latest = await backend.list_latest_eligible_file("reports/team-a")
    """

    def __init__(
        self,
        client: Minio,
        bucket_name: str,
        extensions: Iterable[str],
    ):
        """
        Initialize the backend.

        Args:
            client: Configured MinIO client
            bucket_name: Bucket holding the monitored folders
            extensions: Deliverable file extensions (lowercase, leading dot)
        """
        self.client = client
        self.bucket_name = bucket_name
        self.extensions = tuple(ext.lower() for ext in extensions)

    def is_configured(self) -> bool:
        return self.client is not None

    def _is_eligible(self, object_name: str) -> bool:
        return object_name.lower().endswith(self.extensions)

    def _latest_eligible(self, folder_id: str) -> Optional[RemoteFile]:
        latest = None
        for obj in self.client.list_objects(
            self.bucket_name, prefix=folder_prefix(folder_id), recursive=False
        ):
            if obj.is_dir or not self._is_eligible(obj.object_name):
                continue
            if latest is None or obj.last_modified > latest.last_modified:
                latest = obj

        if latest is None:
            return None

        name = latest.object_name.rsplit("/", 1)[-1]
        extension = Path(name).suffix.lower()
        return RemoteFile(
            id=make_file_id(latest.object_name, latest.etag),
            name=name,
            modified_time=latest.last_modified,
            size=latest.size,
            mime_type=latest.content_type or MimeTypes.BY_EXTENSION.get(extension, MimeTypes.DEFAULT),
        )

    async def list_latest_eligible_file(self, folder_id: str) -> Optional[RemoteFile]:
        """
        Find the most recently modified spreadsheet in a folder.

        Args:
            folder_id: Folder identifier (object prefix)

        Returns:
            RemoteFile, or None if the folder holds no eligible file

        Raises:
            S3Error: If listing fails (treated by the monitor as a failed poll)
        """
        latest = await asyncio.to_thread(self._latest_eligible, folder_id)
        if latest:
            logger.debug(f"Latest file in {folder_id}: {latest.name}")
        return latest

    async def download_file(self, file_id: str, dest_path: Path) -> bool:
        """
        Download a file to a local path.

        Args:
            file_id: Identifier returned by list_latest_eligible_file
            dest_path: Local destination

        Returns:
            True if downloaded, False on failure
        """
        object_name = object_name_from_file_id(file_id)
        dest_path = Path(dest_path)
        # fget_object streams here and renames on success; a broken stream leaves it behind
        part_path = dest_path.with_name(f"{dest_path.name}.part.minio")
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(
                self.client.fget_object,
                bucket_name=self.bucket_name,
                object_name=object_name,
                file_path=str(dest_path),
                tmp_file_path=str(part_path),
            )
            logger.debug(f"File downloaded: {dest_path}")
            return True
        except (S3Error, OSError) as e:
            logger.error(f"Error downloading {object_name}: {e}")
            return False
        finally:
            part_path.unlink(missing_ok=True)

    def _folder_exists(self, folder_id: str) -> bool:
        if not self.client.bucket_exists(self.bucket_name):
            logger.warning(f"Bucket {self.bucket_name} does not exist")
            return False
        objects = self.client.list_objects(
            self.bucket_name, prefix=folder_prefix(folder_id), recursive=False
        )
        return next(iter(objects), None) is not None

    async def validate_folder_access(self, folder_id: str) -> bool:
        """
        Check that a folder exists and can be listed.

        An S3 prefix only exists while it holds at least one object.
        """
        if not folder_id or not folder_id.strip("/ "):
            return False
        try:
            return await asyncio.to_thread(self._folder_exists, folder_id)
        except S3Error as e:
            logger.error(f"Folder validation failed for {folder_id}: {e}")
            return False
