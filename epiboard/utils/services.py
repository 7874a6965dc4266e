import inspect
import logging
import os
import time
import uuid
from functools import wraps
from pathlib import Path
from typing import Optional

from ..storage.paths import ALLOWED_FILES

logger = logging.getLogger(__name__)


def query_timer(func):
    """Decorator to log query execution time (sync or async endpoints)"""

    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                execution_time = (time.time() - start_time) * 1000
                logger.info(f"{func.__name__} took {execution_time:.2f} ms")

        return async_wrapper

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            return func(*args, **kwargs)
        finally:
            execution_time = (time.time() - start_time) * 1000
            logger.info(f"{func.__name__} took {execution_time:.2f} ms")

    return wrapper


def safe_upload_name(filename: Optional[str]) -> Optional[str]:
    """Lowercased basename if it is one of the accepted source files"""
    if not filename:
        return None
    name = Path(filename.replace("\\", "/")).name.lower()
    return name if name in ALLOWED_FILES else None


def store_upload(content: bytes, directory: Path, name: str) -> Path:
    """Write to a temp file in ``directory`` and move it over ``name``"""
    directory.mkdir(parents=True, exist_ok=True)
    tmp = directory / f"{uuid.uuid4()}_{name}"
    dest = directory / name
    try:
        tmp.write_bytes(content)
        os.replace(tmp, dest)
    finally:
        if tmp.exists():
            tmp.unlink()
    return dest


UPLOAD_CHUNK = 1024 * 1024


async def read_capped(upload, max_bytes: int) -> Optional[bytes]:
    """Read an ``UploadFile`` in chunks; ``None`` once it goes past ``max_bytes``"""
    size = getattr(upload, "size", None)
    if size is not None and size > max_bytes:
        return None

    chunks = []
    total = 0
    while True:
        chunk = await upload.read(UPLOAD_CHUNK)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            return None
        chunks.append(chunk)
    return b"".join(chunks)
