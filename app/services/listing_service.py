"""Listing service — lifecycle of a listing from intake to moderation decision.

States: pending -> available | rejected. Decisions are one-way; a decided
listing never goes back to pending. Listings created directly by staff skip
moderation and start available unless told otherwise.

Submission is one transaction: the listing row, its media rows and the
thumbnail update commit together or not at all. Stored files live outside the
database, so a failed submission deletes the files it already wrote
(best-effort; an orphaned file can survive if that deletion also fails).

Decisions use a conditional UPDATE ... WHERE status = 'pending', so two
concurrent decisions on the same listing cannot both apply: the loser updates
zero rows and gets StateConflictError.
"""
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, NotificationError, StateConflictError
from app.core.logging import get_logger
from app.models.listing_model import Listing, ListingCategory, ListingStatus
from app.models.media_model import MediaAsset
from app.schemas.listing_schema import ListingCreate, ListingUpdate
from app.schemas.submission_schema import SubmissionDraft
from app.services.identity_service import IdentityContext, find_user_by_email
from app.services.notification_service import (
    DECISION_APPROVED,
    DECISION_REJECTED,
    DecisionEvent,
    DecisionNotifier,
)
from app.services.storage_service import FileStorage, UploadedBlob

logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "address",
    "price",
    "category",
    "house_type",
    "bedrooms",
    "bathrooms",
    "area_sq_ft",
    "facilities",
    "house_rules",
    "agent_id",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _load(db: AsyncSession, listing_id: UUID, refresh: bool = False) -> Optional[Listing]:
    stmt = select(Listing).where(Listing.id == listing_id)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_listing(db: AsyncSession, listing_id: UUID) -> Listing:
    listing = await _load(db, listing_id)
    if not listing:
        raise NotFoundError(f"Listing {listing_id} not found")
    return listing


async def get_published_listing(db: AsyncSession, listing_id: UUID) -> Listing:
    """Public lookup: unpublished listings are reported as missing."""
    listing = await _load(db, listing_id)
    if not listing or listing.status is not ListingStatus.AVAILABLE:
        raise NotFoundError(f"Listing {listing_id} not found")
    return listing


async def list_listings(
    db: AsyncSession,
    status: Optional[ListingStatus] = None,
    category: Optional[ListingCategory] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[Sequence[Listing], int, int]:
    """Return (listings, total, pages), newest first."""
    filters = []
    if status is not None:
        filters.append(Listing.status == status)
    if category is not None:
        filters.append(Listing.category == category)

    total = (await db.execute(select(func.count(Listing.id)).where(*filters))).scalar_one()
    query = (
        select(Listing)
        .where(*filters)
        .order_by(Listing.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    listings = (await db.execute(query)).scalars().all()
    pages = math.ceil(total / page_size) if total > 0 else 0
    return listings, total, pages


async def search_listings(
    db: AsyncSession,
    query: str,
    status: Optional[ListingStatus] = None,
) -> Sequence[Listing]:
    """Case-insensitive substring search on title or address. % and _ match literally."""
    pattern = f"%{_escape_like(query.strip())}%"
    filters = [or_(Listing.title.ilike(pattern, escape="\\"), Listing.address.ilike(pattern, escape="\\"))]
    if status is not None:
        filters.append(Listing.status == status)
    stmt = (
        select(Listing)
        .where(*filters)
        .order_by(Listing.created_at.desc())
    )
    return (await db.execute(stmt)).scalars().all()


async def list_by_category(
    db: AsyncSession,
    category: ListingCategory,
    status: Optional[ListingStatus] = None,
) -> Sequence[Listing]:
    stmt = select(Listing).where(Listing.category == category)
    if status is not None:
        stmt = stmt.where(Listing.status == status)
    stmt = stmt.order_by(Listing.created_at.desc())
    return (await db.execute(stmt)).scalars().all()


async def list_pending_listings(db: AsyncSession) -> Sequence[Listing]:
    """Moderation queue, oldest submission first."""
    stmt = select(Listing).where(Listing.status == ListingStatus.PENDING).order_by(Listing.created_at.asc())
    return (await db.execute(stmt)).scalars().all()


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

async def create_listing(
    db: AsyncSession,
    payload: ListingCreate,
    identity: Optional[IdentityContext] = None,
) -> Listing:
    """Create a listing directly, bypassing moderation.

    The caller (if known) is recorded as the handling agent, and fills in
    owner email/name only where the payload left them blank, so that the
    caller's "my listings" view includes what they created.
    """
    data = payload.model_dump()
    if data.get("status") is None:
        data["status"] = ListingStatus.AVAILABLE

    agent = None
    if identity is not None and identity.is_authenticated:
        email = identity.email.strip()
        agent = await find_user_by_email(db, email)
        if not (data.get("owner_email") or "").strip():
            data["owner_email"] = email
        if not (data.get("owner_name") or "").strip() and agent is not None and agent.name:
            data["owner_name"] = agent.name

    listing = Listing(**data, agent=agent, media_assets=[], created_at=_now())
    db.add(listing)
    await db.commit()

    logger.info(
        "Listing created directly",
        extra={"listing_id": listing.id, "status": listing.status.value},
    )
    return await _load(db, listing.id, refresh=True)


async def _cleanup_stored_files(storage: FileStorage, paths: List[str]) -> None:
    """Best-effort removal of stored files; the database outcome is already decided."""
    for path in paths:
        try:
            await storage.delete(path)
        except Exception as e:
            # A leftover file is tolerated.
            logger.warning("Could not remove stored file: %s", e, extra={"path": path})


async def submit_listing(
    db: AsyncSession,
    draft: SubmissionDraft,
    blobs: Optional[Sequence[UploadedBlob]],
    storage: FileStorage,
) -> Listing:
    """Persist a validated submission as a pending listing with its media."""
    files = [blob for blob in (blobs or []) if blob is not None and not blob.is_empty]
    for blob in files:
        storage.validate(blob)

    stored_paths: List[str] = []
    try:
        listing = Listing(
            **draft.model_dump(),
            status=ListingStatus.PENDING,
            media_assets=[],
            created_at=_now(),
        )
        db.add(listing)
        await db.flush()

        for position, blob in enumerate(files):
            path = await storage.store(blob)
            stored_paths.append(path)
            listing.media_assets.append(
                MediaAsset(
                    file_path=path,
                    original_filename=blob.filename,
                    content_type=blob.content_type,
                    position=position,
                )
            )
            if listing.image_url is None:
                listing.image_url = path

        await db.flush()
        listing_id = listing.id
        await db.commit()
    except Exception:
        await db.rollback()
        if stored_paths:
            logger.warning("Submission failed; removing %d stored file(s)", len(stored_paths))
            await _cleanup_stored_files(storage, stored_paths)
        raise

    logger.info(
        "Listing submitted for review with %d file(s)",
        len(stored_paths),
        extra={"listing_id": listing_id, "owner_email": draft.owner_email, "status": ListingStatus.PENDING.value},
    )
    return await _load(db, listing_id, refresh=True)


# ---------------------------------------------------------------------------
# Moderation decisions
# ---------------------------------------------------------------------------

async def _decide(
    db: AsyncSession,
    listing_id: UUID,
    new_status: ListingStatus,
    values: dict,
    decision: str,
    message: Optional[str],
    notifier: Optional[DecisionNotifier],
) -> Listing:
    stmt = (
        update(Listing)
        .where(Listing.id == listing_id, Listing.status == ListingStatus.PENDING)
        .values(status=new_status, reviewed_at=_now(), **values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)

    if result.rowcount == 0:
        await db.rollback()
        current = await _load(db, listing_id, refresh=True)
        if current is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        raise StateConflictError(
            f"Listing {listing_id} is not in PENDING status",
            detail={"status": current.status.value},
        )

    await db.commit()
    listing = await _load(db, listing_id, refresh=True)
    logger.info(
        "Listing %s", decision.lower(),
        extra={"listing_id": listing_id, "decision": decision, "status": new_status.value},
    )

    if notifier is not None:
        event = DecisionEvent(
            owner_email=listing.owner_email,
            listing_id=str(listing.id),
            message=message,
            decision=decision,
        )
        try:
            await notifier.publish_decision(event)
        except NotificationError as e:
            logger.error("Decision notification failed: %s", e, extra={"listing_id": listing_id})
        except Exception:
            logger.exception("Unexpected error while notifying decision", extra={"listing_id": listing_id})

    return listing


async def approve_listing(
    db: AsyncSession,
    listing_id: UUID,
    message: Optional[str],
    notifier: Optional[DecisionNotifier] = None,
) -> Listing:
    """Publish a pending listing."""
    return await _decide(
        db,
        listing_id,
        ListingStatus.AVAILABLE,
        {"admin_decision_message": message},
        DECISION_APPROVED,
        message,
        notifier,
    )


async def reject_listing(
    db: AsyncSession,
    listing_id: UUID,
    reason: str,
    notifier: Optional[DecisionNotifier] = None,
) -> Listing:
    """Reject a pending listing; the reason doubles as the decision message."""
    return await _decide(
        db,
        listing_id,
        ListingStatus.REJECTED,
        {"rejection_reason": reason, "admin_decision_message": reason},
        DECISION_REJECTED,
        reason,
        notifier,
    )


# ---------------------------------------------------------------------------
# Administrative edits
# ---------------------------------------------------------------------------

async def update_listing(db: AsyncSession, listing_id: UUID, payload: ListingUpdate) -> Listing:
    """Overwrite the editable fields.

    Status and decision fields are untouched, so an edit can never reopen or
    decide a listing. The thumbnail is only replaced when a new one is given.
    """
    listing = await _load(db, listing_id)
    if not listing:
        raise NotFoundError(f"Listing {listing_id} not found")

    data = payload.model_dump()
    for field in UPDATABLE_FIELDS:
        setattr(listing, field, data.get(field))
    if data.get("image_url"):
        listing.image_url = data["image_url"]

    await db.commit()
    return await _load(db, listing_id, refresh=True)


async def delete_listing(
    db: AsyncSession,
    listing_id: UUID,
    storage: Optional[FileStorage] = None,
) -> None:
    """Delete a listing and its media rows; stored files are removed afterwards."""
    listing = await _load(db, listing_id)
    if not listing:
        raise NotFoundError(f"Listing {listing_id} not found")

    paths = list(listing.image_urls)
    await db.delete(listing)
    await db.commit()
    logger.info("Listing deleted with %d media asset(s)", len(paths), extra={"listing_id": listing_id})

    if storage is not None:
        await _cleanup_stored_files(storage, paths)
