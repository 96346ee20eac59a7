# File: services/file_storage_service.py
import logging
import os
import shutil
from typing import BinaryIO, Literal, Optional

logger = logging.getLogger(__name__)

FileKind = Literal["nmr", "massbank"]


class FileStorageError(Exception):
    pass


class FileStorageService:
    """
    On-disk layout: <data_dir>/<first 2 chars of entry id, lowercased>/<entry id>/<kind>/<filename>
    """

    def __init__(self, data_dir: Optional[str] = None):
        self.data_dir = os.path.abspath(data_dir or os.getenv("NOBS_DATA_DIR", "data"))

    def _prefix(self, entry_id: str) -> str:
        return entry_id[:2].lower()

    def get_entry_dir(self, entry_id: str) -> str:
        return os.path.join(self.data_dir, self._prefix(entry_id), entry_id)

    def get_type_dir(self, entry_id: str, kind: FileKind) -> str:
        return os.path.join(self.get_entry_dir(entry_id), kind)

    def save_file(self, stream: BinaryIO, filename: str, entry_id: str, kind: FileKind) -> str:
        """Copies the upload stream into the entry's type directory and returns the final path."""
        safe_name = os.path.basename((filename or "").replace("\\", "/"))
        if not safe_name or safe_name in (".", ".."):
            raise FileStorageError(f"Invalid file name for {kind} upload")

        target_dir = self.get_type_dir(entry_id, kind)
        target_path = os.path.join(target_dir, safe_name)

        try:
            os.makedirs(target_dir, exist_ok=True)
            stream.seek(0)
            with open(target_path, "wb") as out:
                shutil.copyfileobj(stream, out)
        except OSError as e:
            logger.error(f"Failed to save {kind} file {safe_name} for entry {entry_id}: {e}", exc_info=True)
            raise FileStorageError(f"Failed to save {kind} file") from e

        logger.info(f"📁 Saved {kind} file: {target_path}")
        return target_path

    def save_nmr_archive(self, stream: BinaryIO, filename: str, entry_id: str) -> str:
        return self.save_file(stream, filename, entry_id, "nmr")

    def save_massbank_file(self, stream: BinaryIO, filename: str, entry_id: str) -> str:
        return self.save_file(stream, filename, entry_id, "massbank")

    def delete_entry_files(self, entry_id: str) -> None:
        # Idempotent: a missing directory is not an error
        entry_dir = self.get_entry_dir(entry_id)
        if not os.path.exists(entry_dir):
            return
        shutil.rmtree(entry_dir)
        logger.info(f"🗑️ Deleted files for entry: {entry_id}")


file_storage = FileStorageService()


def get_file_storage() -> FileStorageService:
    return file_storage
