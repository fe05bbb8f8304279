"""Bundles API router.

Two audiences share this router:
- Merchandising tool: whole-record CRUD over bundle configurations
- Storefront & checkout: slot resolution, pricing, shipping policy and
  add-to-cart for live (enabled) bundles

Engine errors map to HTTP statuses through BundleError.status_code; the
response detail carries the machine-readable code (and violations for 422).
"""

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query

from verticals.bundles.errors import BundleError
from verticals.bundles.models.schemas import (
    BundleConfiguration,
    BundleConfigurationWrite,
    ComposedLineItem,
    PaginatedResponse,
    PriceBreakdown,
    ResolvedSlot,
    SelectionRequest,
)
from verticals.bundles.repository import (
    BundleConfigurationRepository,
    get_bundle_repository,
)
from verticals.bundles.service import BundleService, get_bundle_service

router = APIRouter()


def _raise_http(exc: BundleError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_dict()) from exc


def _not_found(configuration_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "code": "configuration_not_found",
            "message": f"Bundle configuration {configuration_id} not found",
        },
    )


# ============================================================================
# Configuration Endpoints (merchandising)
# ============================================================================

@router.get("/configurations", response_model=PaginatedResponse)
async def list_configurations(
    enabled_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    repo: BundleConfigurationRepository = Depends(get_bundle_repository),
):
    """List bundle configurations with pagination."""
    configurations, total = await repo.list(page=page, limit=limit, enabled_only=enabled_only)
    return {
        "data": [c.model_dump(mode="json") for c in configurations],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        },
    }


@router.post("/configurations", status_code=201, response_model=BundleConfiguration)
async def create_configuration(
    request: BundleConfigurationWrite,
    repo: BundleConfigurationRepository = Depends(get_bundle_repository),
):
    """Create a bundle configuration."""
    try:
        return await repo.create(request)
    except BundleError as exc:
        _raise_http(exc)


@router.get("/configurations/{configuration_id}", response_model=BundleConfiguration)
async def get_configuration(
    configuration_id: str,
    repo: BundleConfigurationRepository = Depends(get_bundle_repository),
):
    """Read one configuration, enabled or not."""
    configuration = await repo.get(configuration_id)
    if configuration is None:
        raise _not_found(configuration_id)
    return configuration


@router.put("/configurations/{configuration_id}", response_model=BundleConfiguration)
async def replace_configuration(
    configuration_id: str,
    request: BundleConfigurationWrite,
    repo: BundleConfigurationRepository = Depends(get_bundle_repository),
):
    """Replace a configuration as a whole; there is no partial update."""
    try:
        configuration = await repo.replace(configuration_id, request)
    except BundleError as exc:
        _raise_http(exc)
    if configuration is None:
        raise _not_found(configuration_id)
    return configuration


@router.delete("/configurations/{configuration_id}", status_code=204)
async def delete_configuration(
    configuration_id: str,
    repo: BundleConfigurationRepository = Depends(get_bundle_repository),
):
    """Remove a configuration."""
    deleted = await repo.delete(configuration_id)
    if not deleted:
        raise _not_found(configuration_id)


# ============================================================================
# Storefront Endpoints
# ============================================================================

@router.get("/products/{product_id}/configuration", response_model=BundleConfiguration)
async def get_product_configuration(
    product_id: int,
    repo: BundleConfigurationRepository = Depends(get_bundle_repository),
):
    """Enabled configuration hosted by a product page."""
    configuration = await repo.get_for_product(product_id)
    if configuration is None:
        raise HTTPException(
            status_code=404,
            detail={
                "code": "configuration_not_found",
                "message": f"Product {product_id} has no live bundle",
            },
        )
    return configuration


@router.get(
    "/configurations/{configuration_id}/slots",
    response_model=list[ResolvedSlot],
)
async def resolve_slots(
    configuration_id: str,
    service: BundleService = Depends(get_bundle_service),
):
    """Slots with their live eligible items, in display order."""
    try:
        return await service.resolve_slots(configuration_id)
    except BundleError as exc:
        _raise_http(exc)


@router.post(
    "/configurations/{configuration_id}/price",
    response_model=PriceBreakdown,
)
async def price_selection(
    configuration_id: str,
    request: SelectionRequest,
    service: BundleService = Depends(get_bundle_service),
):
    """Price a selection, or return 422 listing every violation."""
    try:
        return await service.price_selection(configuration_id, request.selections)
    except BundleError as exc:
        _raise_http(exc)


@router.get("/configurations/{configuration_id}/shipping-policy")
async def shipping_policy(
    configuration_id: str,
    service: BundleService = Depends(get_bundle_service),
):
    """Shipping aggregation policy consulted by checkout."""
    try:
        policy = await service.shipping_policy(configuration_id)
    except BundleError as exc:
        _raise_http(exc)
    return {"configuration_id": configuration_id, "shipping_policy": policy.value}


@router.post(
    "/configurations/{configuration_id}/cart",
    status_code=201,
    response_model=ComposedLineItem,
)
async def add_to_cart(
    configuration_id: str,
    request: SelectionRequest,
    service: BundleService = Depends(get_bundle_service),
):
    """Validate, price and add the bundle as one composed cart line."""
    try:
        return await service.add_to_cart(configuration_id, request.selections)
    except BundleError as exc:
        _raise_http(exc)
