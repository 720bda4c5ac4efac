import logging
from pathlib import Path
from typing import Union

from .errors import StorageError

logger = logging.getLogger(__name__)

IMAGES_SUBDIR = "images"


class BlobStore:
    """Raw CSV and image bytes on the local filesystem.

    Blobs are addressed by POSIX-style paths relative to ``root``: CSV files
    live at the top level, images under ``images/``. Directories are created
    on first write.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def ensure_dirs(self) -> Path:
        try:
            (self.root / IMAGES_SUBDIR).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Could not create upload directories under {self.root}: {e}") from e
        return self.root

    def path_for(self, rel_path: str) -> Path:
        full = (self.root / rel_path).resolve()
        if full != self.root and self.root not in full.parents:
            raise StorageError(f"Blob path escapes the upload directory: {rel_path}")
        return full

    def write(self, rel_path: str, data: bytes) -> Path:
        self.ensure_dirs()
        full = self.path_for(rel_path)
        try:
            full.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not write {rel_path}: {e}") from e
        return full

    def read(self, rel_path: str) -> bytes:
        full = self.path_for(rel_path)
        try:
            return full.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read {rel_path}: {e}") from e

    def delete(self, rel_path: str) -> bool:
        """Remove a blob; returns False when it was already gone."""
        full = self.path_for(rel_path)
        try:
            full.unlink()
        except FileNotFoundError:
            logger.debug("Blob %s already absent", rel_path)
            return False
        except OSError as e:
            raise StorageError(f"Could not delete {rel_path}: {e}") from e
        return True


def csv_blob_name(upload_id: str, filename: str) -> str:
    return f"{upload_id}_{filename}"


def image_blob_name(upload_id: str, index: int, filename: str) -> str:
    return f"{IMAGES_SUBDIR}/{upload_id}_{index}_{filename}"


def client_basename(filename: str) -> str:
    """Last component of a client-supplied filename, either separator style."""
    return filename.replace("\\", "/").split("/")[-1].strip()
