"""
Unauthenticated storefront routes (``/public``).
"""

from typing import Optional

from fastapi import APIRouter, HTTPException

from marketplace.api.encryption import encrypted_response
from marketplace.database.core import catalog_funcs, settings_funcs, site_builder_funcs

router = APIRouter(prefix="/public", tags=["public"])

# storefront page name -> stored policy
POLICY_PAGES = {
    "privacy_policy": "privacy_policy",
    "refund_policy": "return_and_refund",
    "shipping_policy": "shipping_policy",
    "terms_of_services": "terms_of_services",
}


@router.get("/products")
async def products(search: Optional[str] = None, category: Optional[str] = None, page: int = 1, limit: int = 20):
    return encrypted_response(catalog_funcs.browse_products(search=search, category=category, page=page, limit=limit))


@router.get("/products/{url_handle}")
async def product(url_handle: str):
    return encrypted_response(catalog_funcs.get_public_product(url_handle=url_handle))


@router.get("/stores")
async def stores():
    return encrypted_response(site_builder_funcs.list_published_stores())


@router.get("/supplier/{supplier_identifier}/store")
async def store(supplier_identifier: str):
    """Published store by supplier id or username."""
    return encrypted_response(site_builder_funcs.get_public_store(supplier_identifier=supplier_identifier))


@router.get("/supplier/{store_name}/{page}")
async def store_policy(store_name: str, page: str):
    """Policy page of a published store, addressed by store name or supplier username."""
    if page not in POLICY_PAGES:
        raise HTTPException(status_code=404, detail="Page not found")
    return encrypted_response(settings_funcs.get_public_policy(store_name=store_name, kind=POLICY_PAGES[page]))
