"""Public listings API — browse, search, "my listings", and public submission.
/api/v1/listings

Browse, search, category and detail only show published (AVAILABLE) listings
and never expose owner contact details. Unpublished listings are visible to
their owner through /mine and to admins through the admin router."""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_file_storage, get_identity
from app.api.responses import ok
from app.core.logging import get_logger
from app.models.listing_model import ListingCategory, ListingStatus
from app.schemas.base_schema import ApiResponse
from app.schemas.listing_schema import ListingListRead, ListingPublicRead, ListingRead, PaginatedResponse
from app.schemas.submission_schema import SubmissionForm, SubmissionResult
from app.services import listing_service
from app.services.identity_service import IdentityContext, list_listings_by_owner, require_email
from app.services.storage_service import FileStorage, UploadedBlob
from app.services.submission_service import assemble_submission

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse[PaginatedResponse])
async def list_listings(
    request: Request,
    db: AsyncSession = Depends(get_db),
    category: Optional[ListingCategory] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """List published listings, optionally by category, newest first."""
    listings, total, pages = await listing_service.list_listings(
        db, status=ListingStatus.AVAILABLE, category=category, page=page, page_size=page_size
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


@router.get("/search", response_model=ApiResponse[list[ListingListRead]])
async def search_listings(
    request: Request,
    q: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Search by title or address."""
    listings = await listing_service.search_listings(db, q, status=ListingStatus.AVAILABLE)
    return ok([ListingListRead.model_validate(l) for l in listings], "Listings found", request)


@router.get("/mine", response_model=ApiResponse[list[ListingRead]])
async def my_listings(
    request: Request,
    db: AsyncSession = Depends(get_db),
    identity: IdentityContext = Depends(get_identity),
):
    """Listings owned by the authenticated caller, including public submissions."""
    email = require_email(identity)
    logger.info("Fetching listings for owner", extra={"owner_email": email})
    listings = await list_listings_by_owner(db, email)
    return ok([ListingRead.model_validate(l) for l in listings], "Listings retrieved successfully", request)


@router.get("/category/{category}", response_model=ApiResponse[list[ListingListRead]])
async def listings_by_category(category: ListingCategory, request: Request, db: AsyncSession = Depends(get_db)):
    listings = await listing_service.list_by_category(db, category, status=ListingStatus.AVAILABLE)
    return ok([ListingListRead.model_validate(l) for l in listings], "Listings listed successfully", request)


@router.get("/{listing_id}", response_model=ApiResponse[ListingPublicRead])
async def get_listing(listing_id: UUID, request: Request, db: AsyncSession = Depends(get_db)):
    """Get a single published listing by ID."""
    listing = await listing_service.get_published_listing(db, listing_id)
    return ok(ListingPublicRead.model_validate(listing), "Listing retrieved successfully", request)


@router.post("/submit", response_model=ApiResponse[SubmissionResult], status_code=201)
async def submit_listing(
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    price: Optional[Decimal] = Form(None),
    category: Optional[str] = Form(None),
    house_type: Optional[str] = Form(None),
    bedrooms: Optional[int] = Form(None),
    bathrooms: Optional[int] = Form(None),
    area_sq_ft: Optional[float] = Form(None),
    amenities: Optional[List[str]] = Form(None),
    owner_name: Optional[str] = Form(None),
    owner_phone: Optional[str] = Form(None),
    owner_email: Optional[str] = Form(None),
    drive_link: Optional[str] = Form(None),
    agent_name: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    identity: IdentityContext = Depends(get_identity),
    storage: FileStorage = Depends(get_file_storage),
):
    """Public submission (multipart). The listing waits in PENDING for admin review."""
    logger.info("Received listing submission: title=%r, images=%d", title, len(images or []))

    form = SubmissionForm(
        title=title,
        description=description,
        address=address,
        price=price,
        category=category,
        house_type=house_type,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        area_sq_ft=area_sq_ft,
        amenities=amenities,
        owner_name=owner_name,
        owner_phone=owner_phone,
        owner_email=owner_email,
        drive_link=drive_link,
        agent_name=agent_name,
    )
    blobs = [
        UploadedBlob(filename=upload.filename or "upload", content=await upload.read(), content_type=upload.content_type)
        for upload in (images or [])
    ]

    draft = await assemble_submission(db, form, blobs, identity)
    listing = await listing_service.submit_listing(db, draft, blobs, storage)

    return ok(
        SubmissionResult(
            listing_id=listing.id,
            status=listing.status,
            image_urls=listing.image_urls,
            drive_link=listing.drive_link,
        ),
        "Listing submitted successfully. Admin will review your submission.",
        request,
    )
