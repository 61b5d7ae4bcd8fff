"""
Storage for uploaded recipe images.
"""

import logging
import re
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from starlette.datastructures import UploadFile

from . import errors

logger = logging.getLogger("foodblog.storage")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

# names produced by LocalImageStore.accept
GENERATED_NAME = re.compile(r"[0-9a-f]{32}\.(png|jpg|jpeg|gif|webp)")


class ImageStore(Protocol):
    """Defines the operations the recipe handlers need from image storage."""

    def accept(self, upload: UploadFile) -> str:
        ...

    def discard(self, filename: Optional[str]) -> None:
        ...


@dataclass
class LocalImageStore:
    """Writes uploads into a directory that is served as static files."""

    directory: Path

    def __post_init__(self):
        self.directory = Path(self.directory)

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def accept(self, upload: UploadFile) -> str:
        suffix = Path(upload.filename or "").suffix.lower()
        if suffix not in IMAGE_EXTENSIONS:
            raise errors.ValidationError(
                f"Unsupported image type '{suffix or upload.filename}'",
                [f"file: allowed extensions are {', '.join(sorted(IMAGE_EXTENSIONS))}"],
            )
        self.ensure_directory()
        filename = f"{uuid.uuid4().hex}{suffix}"
        upload.file.seek(0)
        path = self.directory / filename
        try:
            with path.open("wb") as fh:
                shutil.copyfileobj(upload.file, fh)
        except OSError:
            path.unlink(missing_ok=True)
            raise
        logger.info("Stored image %s (%s)", filename, upload.filename)
        return filename

    def discard(self, filename: Optional[str]) -> None:
        if not filename or not GENERATED_NAME.fullmatch(filename):
            return
        path = self.directory / filename
        if path.is_file():
            path.unlink()
            logger.info("Removed image %s", filename)
