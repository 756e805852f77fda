from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol, Sequence

from werkzeug.utils import secure_filename

from ..core.constants import ALLOWED_RECEIPT_MIME_PREFIXES, ALLOWED_RECEIPT_MIME_TYPES
from ..core.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Upload:
    """A file received from a form, detached from the request object."""

    filename: str
    content_type: str
    data: bytes

    @classmethod
    def from_file_storage(cls, fs) -> "Upload":
        return cls(filename=fs.filename or "", content_type=fs.mimetype or "", data=fs.read())


class ReceiptStorage(Protocol):
    def put(self, *, name: str, data: bytes, content_type: str) -> str:
        """Store bytes under name and return the public URL."""

        raise NotImplementedError


class LocalReceiptStorage(ReceiptStorage):
    """Writes receipts to a directory that Flask serves under url_prefix."""

    def __init__(self, root_dir: str | Path, *, url_prefix: str = "/receipts"):
        self._root = Path(root_dir)
        self._url_prefix = url_prefix.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def put(self, *, name: str, data: bytes, content_type: str) -> str:
        path = self._root / name
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            # "xb" refuses to overwrite an existing object
            with open(path, "xb") as fh:
                fh.write(data)
        except OSError as e:
            raise StorageError(str(e)) from e
        return f"{self._url_prefix}/{name}"


def is_allowed_receipt_type(content_type: str) -> bool:
    ct = (content_type or "").split(";")[0].strip().lower()
    return ct in ALLOWED_RECEIPT_MIME_TYPES or any(ct.startswith(p) for p in ALLOWED_RECEIPT_MIME_PREFIXES)


def generated_name(filename: str, *, now: datetime) -> str:
    """`<epoch-ms>-<uuid hex>.<ext>`: unique regardless of what the user uploaded."""

    ext = ""
    safe = secure_filename(filename or "")
    if "." in safe:
        ext = "." + safe.rsplit(".", 1)[1].lower()
    return f"{int(now.timestamp() * 1000)}-{uuid.uuid4().hex}{ext}"


def store_receipts(storage: ReceiptStorage, uploads: Sequence[Upload], *, now: datetime) -> list[str]:
    """Validate then upload every file; the first failure aborts the whole batch."""

    for up in uploads:
        if not is_allowed_receipt_type(up.content_type):
            raise ValidationError(f"Unsupported receipt type: {up.content_type or 'unknown'}")

    urls: list[str] = []
    for up in uploads:
        url = storage.put(name=generated_name(up.filename, now=now), data=up.data, content_type=up.content_type)
        urls.append(url)
    logger.info("Stored %d receipt(s)", len(urls))
    return urls
