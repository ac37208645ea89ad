"""
Photo file store on local disk, served under /uploads.

Writes and deletes here are not part of any database transaction.
"""
import os
import uuid
from pathlib import Path
from typing import Iterable, List, Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from . import config
from .errors import ValidationError
from .logger import logger


def upload_dir() -> Path:
    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def url_for(file_name: str) -> str:
    return f"{config.UPLOAD_URL_PREFIX}/{file_name}"


def resolve_path(url_path: str) -> Optional[Path]:
    """Map "/uploads/<file>" back to the file on disk, never leaving UPLOAD_DIR."""
    file_name = os.path.basename(url_path.strip().rstrip("/"))
    if not file_name:
        return None
    root = upload_dir().resolve()
    abs_path = (root / file_name).resolve()
    if abs_path.parent != root:
        return None
    return abs_path


async def save_photo(upload: UploadFile) -> str:
    """Validate and store one uploaded photo; returns its public path."""
    contents = await upload.read()
    if len(contents) > config.MAX_UPLOAD_MB * 1024 * 1024:
        raise ValidationError(f"{upload.filename} too large")
    ext = Path(upload.filename or "").suffix.lower()
    if ext not in config.ALLOWED_PHOTO_EXTENSIONS:
        raise ValidationError(f"Invalid image format: {upload.filename}")

    name = f"{uuid.uuid4().hex}{ext}"
    path = upload_dir() / name
    with open(path, "wb") as out:
        out.write(contents)

    try:
        with Image.open(path) as im:
            im.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        path.unlink(missing_ok=True)
        raise ValidationError(f"{upload.filename} is not a valid image")

    logger.info(f"Stored photo {name} ({len(contents)} bytes)")
    return url_for(name)


def delete_photo(url_path: str) -> bool:
    """Best-effort removal. Failures are logged and reported as False."""
    path = resolve_path(url_path)
    if path is None:
        logger.warning(f"Refusing to delete photo outside upload dir: {url_path}")
        return False
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        logger.warning(f"Photo already gone: {url_path}")
        return False
    except OSError as e:
        logger.error(f"Failed to delete photo {url_path}: {e}")
        return False


def delete_photos(url_paths: Iterable[str]) -> List[str]:
    """Delete several photos; returns the paths that could not be removed."""
    return [p for p in url_paths if not delete_photo(p)]
