"""
Content library: the images a supplier has attached to products and
collections, and their removal.

Files are listed per parent entity. Deleting a file drops its reference from
the entity first; the stored file is removed once that change has committed.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.config.config import settings
from marketplace.database.daos.collection_dao import CollectionDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.helpers.ids import to_uuid
from marketplace.database.helpers.timeutils import isoformat, utcnow
from marketplace.database.helpers.transactionManagement import after_commit, transactional
from marketplace.errors import BadRequestError

logger = logging.getLogger("uvicorn")

UPLOAD_PREFIX = "/uploads/"


def stored_file(public_path: str) -> Optional[str]:
    """Filesystem path of an ``/uploads/...`` reference, or None for anything else."""
    if not public_path or not public_path.startswith(UPLOAD_PREFIX):
        return None
    relative = public_path[len(UPLOAD_PREFIX):]
    if ".." in relative.split("/"):
        return None
    return os.path.join(settings.UPLOAD_DIR, *relative.split("/"))


def _file_entry(supplier_id: uuid.UUID, public_path: str) -> dict:
    file_name = public_path.rsplit("/", 1)[-1]
    local = stored_file(public_path)
    stats = os.stat(local) if local and os.path.exists(local) else None
    return {
        "file_name": file_name,
        "full_name": f"user_{supplier_id}/{file_name}",
        "size": f"{stats.st_size / (1024 * 1024):.2f}" if stats else 0,
        "date": isoformat(datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc) if stats else utcnow()),
        "reference": f"{settings.BASE_URL}{public_path}",
        "extension": os.path.splitext(file_name)[1],
        "preview": f"{settings.BASE_URL}{public_path}",
    }


def _remove_files(paths: List[str]) -> None:
    for path in paths:
        local = stored_file(path)
        if local is None:
            continue
        try:
            os.remove(local)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove file {path}: {e}")


@transactional
def get_files(session: Session, supplier_id: str) -> dict:
    supplier_id = to_uuid(supplier_id)
    images = []
    for product in ProductDao().fetchProducts(session=session, supplier_id=supplier_id):
        if product.media:
            images.append(
                {
                    "parent_id": str(product.id),
                    "parent_type": "product",
                    "title": product.title,
                    "images": [_file_entry(supplier_id, path) for path in product.media],
                }
            )
    for collection in CollectionDao().fetchCollections(session=session, supplier_id=supplier_id):
        if collection.collection_images:
            images.append(
                {
                    "parent_id": str(collection.id),
                    "parent_type": "collection",
                    "title": collection.title,
                    "images": [_file_entry(supplier_id, path) for path in collection.collection_images],
                }
            )
    return {"message": "Content loaded successfully", "images": images}


@transactional
def delete_files(session: Session, supplier_id: str, files: List[dict]) -> dict:
    """
    Detach files from their product or collection and delete them.

    Each entry is handled on its own: problems with one file are reported in
    ``results["failed"]`` and do not stop the others.

    Returns
    -------
    dict
        ``{"message", "results": {"success": [...], "failed": [...]}}``.
    """
    if not files:
        raise BadRequestError("No files selected for deletion")
    supplier_id = to_uuid(supplier_id)
    product_dao = ProductDao()
    collection_dao = CollectionDao()
    results = {"success": [], "failed": []}
    removed = []

    for entry in files:
        file_name = entry.get("file_name")
        parent_type = entry.get("parent_type")
        if not entry.get("parent_id") or not parent_type or not file_name:
            results["failed"].append({"file_name": file_name, "reason": "Missing required information"})
            continue
        try:
            parent_id = uuid.UUID(str(entry["parent_id"]))
        except ValueError:
            results["failed"].append({"file_name": file_name, "reason": "Invalid parent id"})
            continue

        if parent_type == "product":
            parent = product_dao.fetchSupplierProduct(session=session, supplier_id=supplier_id, product_id=parent_id)
            attribute, label = "media", "Product"
        elif parent_type == "collection":
            parent = collection_dao.fetchSupplierCollection(session=session, supplier_id=supplier_id, collection_id=parent_id)
            attribute, label = "collection_images", "Collection"
        else:
            results["failed"].append({"file_name": file_name, "reason": "Invalid parent type"})
            continue

        if parent is None:
            results["failed"].append({"file_name": file_name, "reason": f"{label} not found"})
            continue
        paths = getattr(parent, attribute)
        match = next((path for path in paths if path.rsplit("/", 1)[-1] == file_name), None)
        if match is None:
            results["failed"].append({"file_name": file_name, "reason": f"File not found in {parent_type} files"})
            continue
        paths.remove(match)
        removed.append(match)
        results["success"].append({"file_name": file_name})

    if removed:
        after_commit(partial(_remove_files, removed))
    logger.info(f"Supplier {supplier_id} deleted {len(removed)} file(s)")
    return {"message": f"{len(results['success'])} file(s) deleted, {len(results['failed'])} failed", "results": results}
