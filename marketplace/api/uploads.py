"""
Multipart upload persistence for product ``media`` and ``collection_images``.

Files are written under ``settings.UPLOAD_DIR/<kind>/`` with a random name
that keeps the original extension; the public path (served from
``/uploads``) is what gets stored on the entity.
"""

import logging
import mimetypes
import os
import shutil
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

from fastapi import HTTPException, UploadFile

from marketplace.database.config.config import settings

logger = logging.getLogger("uvicorn")

ALLOWED_IMAGE_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif"}
MAX_FILES = 10


def guess_ext(filename: Optional[str]) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext:
        return ext
    guessed = mimetypes.guess_extension(mimetypes.guess_type(filename or "")[0] or "")
    return guessed or ".bin"


def persist_upload(f: UploadFile, kind: str) -> str:
    """
    Save an uploaded image and return its public path.

    Args:
        f (UploadFile): The file uploaded by the client.
        kind (str): Sub-directory, e.g. ``products`` or ``collections``.

    Returns:
        str: ``/uploads/<kind>/<uuid><ext>``.
    """
    content_type = (f.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Only image files are allowed")
    directory = os.path.join(settings.UPLOAD_DIR, kind)
    os.makedirs(directory, exist_ok=True)
    new_name = f"{uuid.uuid4().hex}{guess_ext(f.filename)}"
    with open(os.path.join(directory, new_name), "wb") as out:
        shutil.copyfileobj(f.file, out)
    return f"/uploads/{kind}/{new_name}"


def discard_uploads(paths: List[str]) -> None:
    """Remove stored uploads given their public paths; missing files are ignored."""
    for path in paths:
        kind, name = path[len("/uploads/"):].split("/", 1)
        try:
            os.remove(os.path.join(settings.UPLOAD_DIR, kind, name))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove upload {path}: {e}")


def persist_uploads(files: Optional[List[UploadFile]], kind: str) -> List[str]:
    """Save every non-empty upload; a rejected file removes the ones already written."""
    files = [f for f in (files or []) if f is not None and f.filename]
    if len(files) > MAX_FILES:
        raise HTTPException(status_code=400, detail=f"Too many files. Maximum is {MAX_FILES}")
    paths = []
    try:
        for f in files:
            paths.append(persist_upload(f, kind))
    except Exception:
        discard_uploads(paths)
        raise
    return paths


@contextmanager
def staged_uploads(files: Optional[List[UploadFile]], kind: str) -> Iterator[List[str]]:
    """
    Persist uploads for the duration of a service call.

    The files stay on disk only if the block completes; any exception
    deletes them and propagates.
    """
    paths = persist_uploads(files, kind)
    try:
        yield paths
    except BaseException:
        discard_uploads(paths)
        raise
