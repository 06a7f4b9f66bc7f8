"""Pydantic schemas for the public listing submission flow.

SubmissionForm is the untrusted field bag exactly as received. Required fields
are checked by the submission assembler, not here, so that a missing field is
reported as a domain validation error like every other submission problem.
"""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.listing_model import HouseType, ListingCategory, ListingStatus


class SubmissionForm(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None
    house_type: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area_sq_ft: Optional[float] = None
    amenities: Optional[List[str]] = None
    owner_name: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_email: Optional[str] = None
    drive_link: Optional[str] = None
    agent_name: Optional[str] = None


class SubmissionDraft(BaseModel):
    """Validated, normalized submission. Lives only for one assembly + submit."""
    title: str
    description: str
    address: str
    price: Decimal = Field(..., ge=0)
    category: ListingCategory
    house_type: Optional[HouseType] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area_sq_ft: Optional[float] = Field(None, ge=0)
    facilities: List[str] = []
    owner_name: str
    owner_phone: str
    owner_email: str
    drive_link: Optional[str] = None
    agent_id: Optional[UUID] = None


class SubmissionResult(BaseModel):
    listing_id: UUID
    status: ListingStatus
    image_urls: List[str] = []
    drive_link: Optional[str] = None
