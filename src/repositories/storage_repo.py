"""Storage repository for raw uploads and processed outputs on local disk."""

from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Tuple, Union
from fastapi import UploadFile
from ..config.storage import get_storage_roots
from ..core.exceptions import FileTooLarge
from ..utils.helpers import generate_processed_filename, generate_raw_filename
from ..utils.logger import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024

PathLike = Union[str, Path]


class StorageRepository:
    """Repository for file operations under the raw and processed roots."""

    def __init__(
        self,
        raw_dir: Optional[PathLike] = None,
        processed_dir: Optional[PathLike] = None,
    ):
        default_raw, default_processed = get_storage_roots()
        self.raw_dir = Path(raw_dir) if raw_dir else default_raw
        self.processed_dir = Path(processed_dir) if processed_dir else default_processed

    async def save_upload(self, file: UploadFile, max_bytes: int) -> Tuple[str, int]:
        """
        Stream an upload into the raw root under a unique name.
        Args:
            file: Incoming upload
            max_bytes: Size limit enforced while streaming
        Returns:
            Stored path and number of bytes written
        """
        self.raw_dir.mkdir(parents=True, exist_ok=True)
        original_name = file.filename or "upload"
        destination = self.raw_dir / generate_raw_filename(original_name)

        total_size = 0
        try:
            with destination.open("wb") as out:
                while True:
                    chunk = await file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    total_size += len(chunk)
                    if total_size > max_bytes:
                        out.close()
                        destination.unlink(missing_ok=True)
                        raise FileTooLarge(original_name, max_bytes)
                    out.write(chunk)
        finally:
            await file.close()

        return str(destination), total_size

    def new_processed_path(self, output_format: str) -> Path:
        """Reserve a unique output path for a conversion."""
        self.processed_dir.mkdir(parents=True, exist_ok=True)
        return self.processed_dir / generate_processed_filename(output_format)

    def file_exists(self, path: Optional[PathLike]) -> bool:
        """Check if a file exists on disk."""
        return bool(path) and Path(path).is_file()

    def delete_file(self, path: Optional[PathLike]) -> bool:
        """
        Best-effort removal of a stored file.
        Failures are logged and reported as False, never raised.
        """
        if not path:
            return False
        target = Path(path)
        if not target.exists():
            return False
        try:
            target.unlink()
            return True
        except OSError as exc:
            logger.warning("File deletion failed", path=str(target), error=str(exc))
            return False

    def open_file(self, path: Optional[PathLike]) -> Optional[BinaryIO]:
        """
        Open a stored file for reading, or None when it is gone.
        The handle stays readable if the file is unlinked afterwards.
        """
        if not path:
            return None
        try:
            return Path(path).open("rb")
        except (FileNotFoundError, IsADirectoryError):
            return None


def iter_file(handle: BinaryIO) -> Iterator[bytes]:
    """Yield an open file in CHUNK_SIZE pieces and close it at the end."""
    with handle:
        while True:
            chunk = handle.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
