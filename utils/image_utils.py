"""Type and size gating plus storage for complaint photos."""
import io
import mimetypes
import os
import uuid
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from utils.errors import UploadRejected

DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5 MB
DEFAULT_URL_PREFIX = "/uploads"

_FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "WEBP": "webp",
    "BMP": "bmp",
    "TIFF": "tiff",
}


def has_upload(file: Optional[FileStorage]) -> bool:
    return bool(file and file.filename)


def _stream_size(file: FileStorage) -> int:
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    return size


def validate_image_file(file: FileStorage, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> Tuple[bytes, str]:
    """Return the raw bytes and a file extension, or raise ``UploadRejected``."""
    mimetype = (file.mimetype or "").lower()
    if not mimetype.startswith("image/"):
        raise UploadRejected("Only image files are allowed")

    size = _stream_size(file)
    if size == 0:
        raise UploadRejected("Empty file")
    if size > max_bytes:
        raise UploadRejected(f"File exceeds the {max_bytes // (1024 * 1024)} MB limit")

    content = file.read()
    if len(content) > max_bytes:
        raise UploadRejected(f"File exceeds the {max_bytes // (1024 * 1024)} MB limit")

    file.stream.seek(0)
    return content, image_extension(content, mimetype)


def _detect_format(content: bytes) -> str:
    """Pillow's name for the format, or "" when it cannot identify the header."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            return (img.format or "").upper()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        return ""


def image_extension(content: bytes, mimetype: str) -> str:
    """Extension for a stored upload. Only names the file; never rejects it."""
    detected = _FORMAT_EXTENSIONS.get(_detect_format(content))
    if detected:
        return detected
    guessed = mimetypes.guess_extension(mimetype)
    if guessed:
        return guessed.lstrip(".")
    subtype = mimetype.partition("/")[2].split("+", 1)[0]
    return secure_filename(subtype) or "img"


def save_image_bytes(image_bytes: bytes, upload_dir: str, extension: str) -> str:
    os.makedirs(upload_dir, exist_ok=True)
    safe_name = secure_filename(f"{uuid.uuid4().hex}.{extension}")
    with open(os.path.join(upload_dir, safe_name), "wb") as f:
        f.write(image_bytes)
    return safe_name


def persist_image(
    file: FileStorage,
    upload_dir: str,
    max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    url_prefix: str = DEFAULT_URL_PREFIX,
) -> str:
    """Gate and store ``file``; returns the public path recorded as the complaint's image path."""
    image_bytes, ext = validate_image_file(file, max_bytes=max_bytes)
    stored_name = save_image_bytes(image_bytes, upload_dir, ext)
    return f"{url_prefix.rstrip('/')}/{stored_name}"


def resolve_image_path(image_path: str, upload_dir: str) -> Optional[str]:
    """Map a public image path back to a file inside ``upload_dir``; None if it would escape."""
    name = secure_filename(os.path.basename(image_path or ""))
    if not name:
        return None
    abs_root = os.path.abspath(upload_dir)
    abs_path = os.path.abspath(os.path.join(abs_root, name))
    if os.path.commonpath([abs_root, abs_path]) != abs_root:
        return None
    return abs_path


def remove_image(image_path: Optional[str], upload_dir: str) -> bool:
    """Delete the stored file for ``image_path``. Returns True when a file was removed."""
    if not image_path:
        return False
    abs_path = resolve_image_path(image_path, upload_dir)
    if not abs_path or not os.path.isfile(abs_path):
        return False
    os.remove(abs_path)
    return True
