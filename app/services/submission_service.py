"""Submission assembler — turns an untrusted public submission into a draft.

Everything here runs before anything is written: a submission that fails any
rule raises a ValidationError subclass and no listing row is created.

Rules:
1. Required text fields must be non-blank; price must be present and >= 0
2. Category is matched case-insensitively and falls back to "sale"
3. House type is matched the same way but falls back to None
4. At least one non-empty file OR a drive link; a supplied link must be valid
   even when files are attached
5. Owner email comes from the session when authenticated, else from the form
6. An agent name, if given, is looked up by exact display name; no match is fine
"""
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidDriveLinkError, ValidationError
from app.core.logging import get_logger
from app.models.listing_model import HouseType, ListingCategory
from app.schemas.submission_schema import SubmissionDraft, SubmissionForm
from app.services.identity_service import (
    IdentityContext,
    find_user_by_display_name,
    resolve_owner_email,
)
from app.services.link_validator import is_valid_external_link
from app.services.storage_service import UploadedBlob

logger = get_logger(__name__)

REQUIRED_TEXT_FIELDS = ("title", "description", "address", "owner_name", "owner_phone")


def parse_category(value: Optional[str]) -> ListingCategory:
    if not value or not value.strip():
        return ListingCategory.SALE
    try:
        return ListingCategory(value.strip().lower())
    except ValueError:
        return ListingCategory.SALE


def parse_house_type(value: Optional[str]) -> Optional[HouseType]:
    if not value or not value.strip():
        return None
    try:
        return HouseType(value.strip().lower())
    except ValueError:
        return None


def has_uploaded_files(blobs: Optional[Sequence[UploadedBlob]]) -> bool:
    return bool(blobs) and any(blob is not None and not blob.is_empty for blob in blobs)


def _required_text(form: SubmissionForm, field: str) -> str:
    value = getattr(form, field)
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", detail={"field": field})
    return value.strip()


def _validate_media(form: SubmissionForm, blobs: Optional[Sequence[UploadedBlob]]) -> Optional[str]:
    """Return the normalized drive link (or None) once the media rule holds."""
    drive_link = form.drive_link.strip() if form.drive_link else None
    has_link = bool(drive_link)

    if not has_uploaded_files(blobs) and not has_link:
        raise ValidationError("Drive link is required when no files are uploaded.")
    if has_link and not is_valid_external_link(drive_link):
        raise InvalidDriveLinkError(
            "Invalid Google Drive link. Please provide a valid drive.google.com/docs.google.com resource URL.",
            detail={"drive_link": drive_link},
        )
    return drive_link or None


async def assemble_submission(
    db: AsyncSession,
    form: SubmissionForm,
    blobs: Optional[Sequence[UploadedBlob]],
    identity: Optional[IdentityContext],
) -> SubmissionDraft:
    """Validate ``form`` and resolve ownership and agent. Raises ValidationError."""
    text = {field: _required_text(form, field) for field in REQUIRED_TEXT_FIELDS}

    if form.price is None:
        raise ValidationError("price is required", detail={"field": "price"})
    if form.price < Decimal("0"):
        raise ValidationError("price must not be negative", detail={"field": "price"})
    for field in ("bedrooms", "bathrooms", "area_sq_ft"):
        value = getattr(form, field)
        if value is not None and value < 0:
            raise ValidationError(f"{field} must not be negative", detail={"field": field})

    drive_link = _validate_media(form, blobs)
    owner_email = resolve_owner_email(identity, form.owner_email)

    agent_id = None
    if form.agent_name:
        agent = await find_user_by_display_name(db, form.agent_name)
        if agent is not None:
            agent_id = agent.id
        else:
            logger.info("No agent named %r; submission left unassigned", form.agent_name)

    return SubmissionDraft(
        **text,
        price=form.price,
        category=parse_category(form.category),
        house_type=parse_house_type(form.house_type),
        bedrooms=form.bedrooms,
        bathrooms=form.bathrooms,
        area_sq_ft=form.area_sq_ft,
        facilities=[a.strip() for a in (form.amenities or []) if a and a.strip()],
        owner_email=owner_email,
        drive_link=drive_link,
        agent_id=agent_id,
    )
