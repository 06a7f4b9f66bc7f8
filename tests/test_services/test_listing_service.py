"""Tests for the listing lifecycle — submission, rollback, decisions, admin edits."""
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, StateConflictError, StorageError, ValidationError
from app.models.listing_model import Listing, ListingCategory, ListingStatus
from app.models.media_model import MediaAsset
from app.schemas.listing_schema import ListingCreate, ListingUpdate
from app.schemas.submission_schema import SubmissionDraft
from app.services import listing_service
from app.services.identity_service import IdentityContext, list_listings_by_owner
from app.services.storage_service import LocalFileStorage, UploadedBlob
from tests.conftest import (
    FailingNotifier,
    FlakyStorage,
    RecordingNotifier,
    make_listing_payload,
    make_user,
    test_session_factory,
)


def make_draft(**overrides) -> SubmissionDraft:
    fields = {
        "title": "Sunny Flat",
        "description": "Bright flat",
        "address": "12 Rua das Flores",
        "price": Decimal("250000"),
        "category": ListingCategory.SALE,
        "owner_name": "Ana Silva",
        "owner_phone": "+351 910 000 000",
        "owner_email": "ana@example.com",
        "drive_link": "https://drive.google.com/file/d/abc123/view",
    }
    fields.update(overrides)
    return SubmissionDraft(**fields)


def photos(*names):
    return [UploadedBlob(name, f"bytes-of-{name}".encode(), "image/jpeg") for name in names]


async def count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar_one()


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_submit_with_drive_link_only(db_session, storage):
    listing = await listing_service.submit_listing(db_session, make_draft(), [], storage)

    assert listing.status is ListingStatus.PENDING
    assert listing.created_at is not None
    assert listing.drive_link == "https://drive.google.com/file/d/abc123/view"
    assert listing.image_urls == []
    assert listing.image_url is None
    assert listing.reviewed_at is None
    assert listing.admin_decision_message is None


@pytest.mark.asyncio
async def test_submit_stores_files_in_order_and_sets_thumbnail(db_session, storage):
    blobs = photos("front.jpg", "kitchen.jpg") + [UploadedBlob("empty.jpg", b"")]
    listing = await listing_service.submit_listing(db_session, make_draft(drive_link=None), blobs, storage)

    assert len(listing.media_assets) == 2
    assert [m.original_filename for m in listing.media_assets] == ["front.jpg", "kitchen.jpg"]
    assert listing.image_urls == [m.file_path for m in listing.media_assets]
    assert listing.image_url == listing.image_urls[0]
    assert len(list(storage.root.iterdir())) == 2


@pytest.mark.asyncio
async def test_submit_rejects_disallowed_file_before_persisting(db_session, storage):
    blobs = photos("front.jpg") + [UploadedBlob("virus.exe", b"MZ")]
    with pytest.raises(ValidationError):
        await listing_service.submit_listing(db_session, make_draft(), blobs, storage)

    assert await count(db_session, Listing) == 0
    assert not storage.root.exists() or list(storage.root.iterdir()) == []


@pytest.mark.asyncio
async def test_submit_storage_failure_rolls_back_and_cleans_up(db_session, tmp_path):
    storage = FlakyStorage(tmp_path / "uploads", fail_on=3)

    with pytest.raises(StorageError):
        await listing_service.submit_listing(
            db_session, make_draft(), photos("a.jpg", "b.jpg", "c.jpg"), storage
        )

    assert len(storage.stored) == 2
    assert storage.deleted == storage.stored
    assert list((tmp_path / "uploads").iterdir()) == []
    assert await count(db_session, Listing) == 0
    assert await count(db_session, MediaAsset) == 0


@pytest.mark.asyncio
async def test_submit_cleanup_errors_do_not_mask_original_failure(db_session, tmp_path):
    storage = FlakyStorage(tmp_path / "uploads", fail_on=2, fail_delete=True)

    with pytest.raises(StorageError, match="disk full"):
        await listing_service.submit_listing(db_session, make_draft(), photos("a.jpg", "b.jpg"), storage)

    assert storage.deleted == storage.stored
    assert await count(db_session, Listing) == 0


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_approve_publishes_and_notifies(db_session, storage):
    submitted = await listing_service.submit_listing(db_session, make_draft(), [], storage)
    notifier = RecordingNotifier()

    listing = await listing_service.approve_listing(db_session, submitted.id, "Looks good", notifier)

    assert listing.status is ListingStatus.AVAILABLE
    assert listing.admin_decision_message == "Looks good"
    assert listing.rejection_reason is None
    assert listing.reviewed_at is not None
    assert len(notifier.events) == 1
    event = notifier.events[0]
    assert event.decision == "Approved"
    assert event.owner_email == "ana@example.com"
    assert event.listing_id == str(submitted.id)
    assert event.message == "Looks good"


@pytest.mark.asyncio
async def test_reject_round_trip(db_session, storage):
    submitted = await listing_service.submit_listing(db_session, make_draft(), [], storage)
    notifier = RecordingNotifier()

    await listing_service.reject_listing(db_session, submitted.id, "bad photos", notifier)
    reread = await listing_service.get_listing(db_session, submitted.id)

    assert reread.status is ListingStatus.REJECTED
    assert reread.rejection_reason == "bad photos"
    assert reread.admin_decision_message == "bad photos"
    assert reread.reviewed_at is not None
    assert notifier.events[0].decision == "Rejected"


@pytest.mark.asyncio
async def test_second_decision_conflicts_and_changes_nothing(db_session, storage):
    submitted = await listing_service.submit_listing(db_session, make_draft(), [], storage)
    notifier = RecordingNotifier()
    first = await listing_service.reject_listing(db_session, submitted.id, "bad photos", notifier)
    reviewed_at = first.reviewed_at

    with pytest.raises(StateConflictError):
        await listing_service.approve_listing(db_session, submitted.id, "changed my mind", notifier)
    with pytest.raises(StateConflictError):
        await listing_service.reject_listing(db_session, submitted.id, "again", notifier)

    reread = await listing_service.get_listing(db_session, submitted.id)
    assert reread.status is ListingStatus.REJECTED
    assert reread.rejection_reason == "bad photos"
    assert reread.admin_decision_message == "bad photos"
    assert reread.reviewed_at == reviewed_at
    assert len(notifier.events) == 1


@pytest.mark.asyncio
async def test_concurrent_decisions_at_most_one_wins(db_session, storage):
    submitted = await listing_service.submit_listing(db_session, make_draft(), [], storage)

    async with test_session_factory() as first, test_session_factory() as second:
        # Both moderators loaded the listing while it was still pending.
        assert (await listing_service.get_listing(first, submitted.id)).status is ListingStatus.PENDING
        assert (await listing_service.get_listing(second, submitted.id)).status is ListingStatus.PENDING

        await listing_service.approve_listing(first, submitted.id, "ok")
        with pytest.raises(StateConflictError):
            await listing_service.reject_listing(second, submitted.id, "no")

    async with test_session_factory() as fresh:
        final = await listing_service.get_listing(fresh, submitted.id)
        assert final.status is ListingStatus.AVAILABLE
        assert final.rejection_reason is None


@pytest.mark.asyncio
async def test_notifier_failure_keeps_decision(db_session, storage):
    submitted = await listing_service.submit_listing(db_session, make_draft(), [], storage)
    notifier = FailingNotifier()

    listing = await listing_service.approve_listing(db_session, submitted.id, "ok", notifier)

    assert listing.status is ListingStatus.AVAILABLE
    assert len(notifier.events) == 1
    async with test_session_factory() as fresh:
        assert (await listing_service.get_listing(fresh, submitted.id)).status is ListingStatus.AVAILABLE


@pytest.mark.asyncio
async def test_decide_unknown_listing(db_session):
    with pytest.raises(NotFoundError):
        await listing_service.approve_listing(db_session, uuid4(), "ok")


@pytest.mark.asyncio
async def test_directly_created_listing_cannot_be_decided(db_session):
    listing = await listing_service.create_listing(db_session, ListingCreate(**make_listing_payload()))
    with pytest.raises(StateConflictError):
        await listing_service.reject_listing(db_session, listing.id, "nope")


# ---------------------------------------------------------------------------
# Direct creation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_defaults_to_available(db_session):
    listing = await listing_service.create_listing(db_session, ListingCreate(**make_listing_payload()))
    assert listing.status is ListingStatus.AVAILABLE
    assert listing.created_at is not None
    assert listing.agent_id is None


@pytest.mark.asyncio
async def test_create_honours_explicit_status(db_session):
    payload = ListingCreate(**make_listing_payload(status="pending"))
    listing = await listing_service.create_listing(db_session, payload)
    assert listing.status is ListingStatus.PENDING


@pytest.mark.asyncio
async def test_create_attributes_caller_and_backfills_owner(db_session):
    agent = await make_user(db_session, "joao@agency.pt", "João Costa")

    listing = await listing_service.create_listing(
        db_session, ListingCreate(**make_listing_payload()), IdentityContext(email="joao@agency.pt")
    )

    assert listing.agent_id == agent.id
    assert listing.owner_email == "joao@agency.pt"
    assert listing.owner_name == "João Costa"
    mine = await list_listings_by_owner(db_session, "joao@agency.pt")
    assert [l.id for l in mine] == [listing.id]


@pytest.mark.asyncio
async def test_create_never_overrides_supplied_owner(db_session):
    await make_user(db_session, "joao@agency.pt", "João Costa")
    payload = ListingCreate(**make_listing_payload(owner_email="owner@home.pt", owner_name="Maria"))

    listing = await listing_service.create_listing(db_session, payload, IdentityContext(email="joao@agency.pt"))

    assert listing.owner_email == "owner@home.pt"
    assert listing.owner_name == "Maria"


# ---------------------------------------------------------------------------
# Update / delete / reads
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_overwrites_fields_but_not_created_at(db_session):
    listing = await listing_service.create_listing(db_session, ListingCreate(**make_listing_payload()))
    created_at = listing.created_at

    payload = ListingUpdate(**make_listing_payload(title="Renovated townhouse", price=500000))
    updated = await listing_service.update_listing(db_session, listing.id, payload)

    assert updated.title == "Renovated townhouse"
    assert updated.price == Decimal("500000")
    assert updated.created_at == created_at


@pytest.mark.asyncio
async def test_update_cannot_reopen_decided_listing(db_session, storage):
    submitted = await listing_service.submit_listing(db_session, make_draft(), photos("front.jpg"), storage)
    notifier = RecordingNotifier()
    rejected = await listing_service.reject_listing(db_session, submitted.id, "bad photos", notifier)
    reviewed_at = rejected.reviewed_at
    thumbnail = rejected.image_url

    payload = ListingUpdate(**make_listing_payload(title="Retouched photos", status="pending"))
    updated = await listing_service.update_listing(db_session, submitted.id, payload)

    assert updated.title == "Retouched photos"
    assert updated.status is ListingStatus.REJECTED
    assert updated.image_url == thumbnail
    with pytest.raises(StateConflictError):
        await listing_service.approve_listing(db_session, submitted.id, "second decision", notifier)

    reread = await listing_service.get_listing(db_session, submitted.id)
    assert reread.status is ListingStatus.REJECTED
    assert reread.rejection_reason == "bad photos"
    assert reread.reviewed_at == reviewed_at
    assert [e.decision for e in notifier.events] == ["Rejected"]


@pytest.mark.asyncio
async def test_update_cannot_publish_pending_listing(db_session, storage):
    submitted = await listing_service.submit_listing(db_session, make_draft(), [], storage)

    payload = ListingUpdate(**make_listing_payload(status="available"))
    updated = await listing_service.update_listing(db_session, submitted.id, payload)

    assert updated.status is ListingStatus.PENDING
    assert updated.reviewed_at is None


@pytest.mark.asyncio
async def test_update_unknown_listing(db_session):
    payload = ListingUpdate(**make_listing_payload())
    with pytest.raises(NotFoundError):
        await listing_service.update_listing(db_session, uuid4(), payload)


@pytest.mark.asyncio
async def test_delete_cascades_media_and_files(db_session, storage):
    listing = await listing_service.submit_listing(
        db_session, make_draft(), photos("a.jpg", "b.jpg"), storage
    )
    other = await listing_service.submit_listing(db_session, make_draft(), photos("c.jpg"), storage)

    await listing_service.delete_listing(db_session, listing.id, storage)

    with pytest.raises(NotFoundError):
        await listing_service.get_listing(db_session, listing.id)
    remaining = (await db_session.execute(select(MediaAsset))).scalars().all()
    assert [m.listing_id for m in remaining] == [other.id]
    assert len(list(storage.root.iterdir())) == 1


@pytest.mark.asyncio
async def test_delete_unknown_listing(db_session):
    with pytest.raises(NotFoundError):
        await listing_service.delete_listing(db_session, uuid4())


@pytest.mark.asyncio
async def test_search_and_pending_queue(db_session, storage):
    await listing_service.submit_listing(db_session, make_draft(title="Sunny Flat"), [], storage)
    await listing_service.create_listing(
        db_session, ListingCreate(**make_listing_payload(title="Dark Cellar", address="Porto"))
    )

    assert [l.title for l in await listing_service.search_listings(db_session, "sunny")] == ["Sunny Flat"]
    assert [l.title for l in await listing_service.search_listings(db_session, "porto")] == ["Dark Cellar"]
    assert [l.title for l in await listing_service.list_pending_listings(db_session)] == ["Sunny Flat"]

    listings, total, pages = await listing_service.list_listings(db_session, status=ListingStatus.AVAILABLE)
    assert total == 1 and pages == 1
    assert listings[0].title == "Dark Cellar"


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(db_session):
    await listing_service.create_listing(db_session, ListingCreate(**make_listing_payload(title="Loft_2")))
    await listing_service.create_listing(db_session, ListingCreate(**make_listing_payload(title="LoftX2")))
    await listing_service.create_listing(db_session, ListingCreate(**make_listing_payload(title="100% renovated")))

    assert [l.title for l in await listing_service.search_listings(db_session, "t_2")] == ["Loft_2"]
    assert [l.title for l in await listing_service.search_listings(db_session, "0%")] == ["100% renovated"]
    assert [l.title for l in await listing_service.search_listings(db_session, "%")] == ["100% renovated"]


@pytest.mark.asyncio
async def test_public_reads_only_return_published(db_session, storage):
    pending = await listing_service.submit_listing(
        db_session, make_draft(title="Sunny Flat", category=ListingCategory.RENT), [], storage
    )
    rejected = await listing_service.submit_listing(db_session, make_draft(title="Sunny Loft"), [], storage)
    await listing_service.reject_listing(db_session, rejected.id, "duplicate")

    for listing_id in (pending.id, rejected.id):
        with pytest.raises(NotFoundError):
            await listing_service.get_published_listing(db_session, listing_id)
    assert await listing_service.search_listings(db_session, "sunny", status=ListingStatus.AVAILABLE) == []
    assert await listing_service.list_by_category(
        db_session, ListingCategory.RENT, status=ListingStatus.AVAILABLE
    ) == []

    await listing_service.approve_listing(db_session, pending.id, "ok")
    published = await listing_service.get_published_listing(db_session, pending.id)
    assert published.id == pending.id


class ExplodingDeleteStorage(LocalFileStorage):
    async def delete(self, path: str) -> bool:
        raise RuntimeError("backend unavailable")


@pytest.mark.asyncio
async def test_delete_survives_unexpected_storage_errors(db_session, tmp_path):
    storage = ExplodingDeleteStorage(tmp_path / "uploads")
    listing = await listing_service.submit_listing(db_session, make_draft(), photos("a.jpg"), storage)

    await listing_service.delete_listing(db_session, listing.id, storage)

    with pytest.raises(NotFoundError):
        await listing_service.get_listing(db_session, listing.id)
    assert await count(db_session, MediaAsset) == 0
