"""Admin listings API — direct creation, edits, deletion, and moderation.
/api/v1/admin/listings (X-API-Key required, applied in main.py)"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_file_storage, get_identity, get_notifier
from app.api.responses import ok
from app.models.listing_model import ListingCategory, ListingStatus
from app.schemas.base_schema import ApiResponse
from app.schemas.listing_schema import (
    ApproveRequest,
    ListingCreate,
    ListingListRead,
    ListingRead,
    ListingUpdate,
    PaginatedResponse,
    RejectRequest,
)
from app.services import listing_service
from app.services.identity_service import IdentityContext
from app.services.notification_service import DecisionNotifier
from app.services.storage_service import FileStorage

router = APIRouter()


@router.get("", response_model=ApiResponse[PaginatedResponse])
async def list_all_listings(
    request: Request,
    db: AsyncSession = Depends(get_db),
    status: Optional[ListingStatus] = Query(None),
    category: Optional[ListingCategory] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """All listings in any status, with optional status/category filters."""
    listings, total, pages = await listing_service.list_listings(
        db, status=status, category=category, page=page, page_size=page_size
    )
    return ok(
        PaginatedResponse(
            items=[ListingListRead.model_validate(l) for l in listings],
            total=total,
            page=page,
            page_size=page_size,
            pages=pages,
        ),
        "Listings listed successfully",
        request,
    )


@router.get("/pending", response_model=ApiResponse[list[ListingRead]])
async def pending_listings(request: Request, db: AsyncSession = Depends(get_db)):
    """Moderation queue."""
    listings = await listing_service.list_pending_listings(db)
    return ok(
        [ListingRead.model_validate(l) for l in listings],
        "Pending listings retrieved successfully",
        request,
        meta={"total": len(listings)},
    )


@router.get("/{listing_id}", response_model=ApiResponse[ListingRead])
async def get_listing(listing_id: UUID, request: Request, db: AsyncSession = Depends(get_db)):
    """Full listing, including owner contact and decision fields."""
    listing = await listing_service.get_listing(db, listing_id)
    return ok(ListingRead.model_validate(listing), "Listing retrieved successfully", request)


@router.post("", response_model=ApiResponse[ListingRead], status_code=201)
async def create_listing(
    payload: ListingCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    identity: IdentityContext = Depends(get_identity),
):
    """Create a listing directly (no moderation; available unless a status is given)."""
    listing = await listing_service.create_listing(db, payload, identity)
    return ok(ListingRead.model_validate(listing), "Listing created successfully", request)


@router.put("/{listing_id}", response_model=ApiResponse[ListingRead])
async def update_listing(
    listing_id: UUID,
    payload: ListingUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Overwrite a listing's editable fields."""
    listing = await listing_service.update_listing(db, listing_id, payload)
    return ok(ListingRead.model_validate(listing), "Listing updated successfully", request)


@router.delete("/{listing_id}", response_model=ApiResponse[None], status_code=200)
async def delete_listing(
    listing_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    """Delete a listing (hard delete — cascades to media_assets)."""
    await listing_service.delete_listing(db, listing_id, storage)
    return ok(None, "Listing deleted successfully", request)


@router.post("/{listing_id}/approve", response_model=ApiResponse[ListingRead])
async def approve_listing(
    listing_id: UUID,
    payload: ApproveRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifier: DecisionNotifier = Depends(get_notifier),
):
    listing = await listing_service.approve_listing(db, listing_id, payload.message, notifier)
    return ok(ListingRead.model_validate(listing), "Listing approved", request)


@router.post("/{listing_id}/reject", response_model=ApiResponse[ListingRead])
async def reject_listing(
    listing_id: UUID,
    payload: RejectRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifier: DecisionNotifier = Depends(get_notifier),
):
    listing = await listing_service.reject_listing(db, listing_id, payload.reason, notifier)
    return ok(ListingRead.model_validate(listing), "Listing rejected", request)
