from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from nota_backend.config import settings

logger = logging.getLogger(__name__)

_FILENAME_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")
_FILENAME_MAX_LENGTH = 255
_TEXT_SNIFF_BYTES = 64
# Tab, LF, CR plus printable ASCII.
_TEXT_ALLOWED_BYTES = frozenset({9, 10, 13, *range(32, 127)})


class UploadRejection(str, Enum):
    EMPTY_FILE = "EMPTY_FILE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    CONTENT_TYPE_MISMATCH = "CONTENT_TYPE_MISMATCH"


@dataclass(frozen=True)
class UploadPolicy:
    max_size_bytes: int = 10 * 1024 * 1024
    allowed_extensions: tuple[str, ...] = ("txt", "md", "pdf", "png", "jpg", "jpeg", "gif")
    allowed_mime_types: tuple[str, ...] = (
        "text/plain",
        "text/markdown",
        "application/pdf",
        "image/png",
        "image/jpeg",
        "image/gif",
    )

    @classmethod
    def from_settings(cls) -> "UploadPolicy":
        return cls(
            max_size_bytes=int(settings.upload_max_size_bytes),
            allowed_extensions=tuple(settings.upload_allowed_extensions_list()),
            allowed_mime_types=tuple(settings.upload_allowed_mime_types_list()),
        )


@dataclass(frozen=True)
class UploadedFile:
    name: str | None
    declared_content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def sanitize_filename(name: str | None) -> str:
    """Reduce a client-supplied filename to a safe basename.

    Path separators of both flavours are honoured so traversal attempts collapse
    to their last segment; leading/trailing dots are trimmed to block dotfiles
    and ``..``. Idempotent.
    """
    if not name:
        return ""
    last_segment = name.replace("\\", "/").rsplit("/", 1)[-1]
    safe = _FILENAME_UNSAFE_CHARS_RE.sub("_", last_segment)
    return safe.strip(".")[:_FILENAME_MAX_LENGTH].strip(".")


def file_extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def normalize_content_type(content_type: str | None) -> str:
    # "text/plain; charset=utf-8" -> "text/plain"
    return (content_type or "").split(";", 1)[0].strip().lower()


def has_allowed_magic(data: bytes) -> bool:
    if not data:
        return False
    if len(data) >= 8 and data[:4] == b"\x89PNG":
        return True
    if len(data) >= 3 and data[:3] == b"\xff\xd8\xff":
        return True
    if len(data) >= 6 and data[:3] == b"GIF":
        return True
    if len(data) >= 5 and data[:4] == b"%PDF":
        return True
    # Plain-text heuristic.
    return all(b in _TEXT_ALLOWED_BYTES for b in data[:_TEXT_SNIFF_BYTES])


def validate_upload(
    file: UploadedFile, policy: UploadPolicy | None = None
) -> UploadRejection | None:
    """Return the first failed check, or None when the upload is acceptable.

    Checks run in a fixed order: payload present, size, extension, then the
    declared content type together with the magic-number sniff. Both of the
    latter must pass.
    """
    policy = policy or UploadPolicy.from_settings()
    filename = sanitize_filename(file.name)

    if not file.data:
        return _reject(UploadRejection.EMPTY_FILE, file, filename)

    if file.size > policy.max_size_bytes:
        return _reject(UploadRejection.FILE_TOO_LARGE, file, filename)

    ext = file_extension(filename)
    if not ext or ext not in {e.lower() for e in policy.allowed_extensions}:
        return _reject(UploadRejection.INVALID_EXTENSION, file, filename)

    declared = normalize_content_type(file.declared_content_type)
    header_allowed = declared in {m.lower() for m in policy.allowed_mime_types}
    magic_allowed = has_allowed_magic(file.data)
    if not (header_allowed and magic_allowed):
        logger.warning(
            "rejected upload due to content-type mismatch: "
            "header=%r magic_allowed=%s name=%r size=%d",
            declared,
            magic_allowed,
            filename,
            file.size,
        )
        return UploadRejection.CONTENT_TYPE_MISMATCH

    return None


def _reject(reason: UploadRejection, file: UploadedFile, filename: str) -> UploadRejection:
    logger.warning("rejected upload reason=%s name=%r size=%d", reason.value, filename, file.size)
    return reason
