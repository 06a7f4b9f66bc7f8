"""Pydantic schemas for Listing API requests and responses."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.listing_model import HouseType, ListingCategory, ListingStatus


class MediaAssetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_path: str
    original_filename: Optional[str] = None
    content_type: Optional[str] = None
    position: int = 0


class ListingBase(BaseModel):
    """Shared fields for create and update."""
    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    category: ListingCategory = ListingCategory.SALE
    house_type: Optional[HouseType] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area_sq_ft: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    facilities: List[str] = []
    house_rules: Optional[str] = None


class ListingCreate(ListingBase):
    """Direct (administrative) creation. Status defaults to available when omitted."""
    status: Optional[ListingStatus] = None
    owner_name: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_email: Optional[str] = None
    drive_link: Optional[str] = None


class ListingUpdate(ListingBase):
    """Full overwrite of the administratively editable fields.

    Status is not editable here; it only moves through approve/reject.
    """
    agent_id: Optional[UUID] = None


class ListingPublicRead(ListingBase):
    """Published listing as shown to anonymous visitors (no owner contact details)."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: ListingStatus
    image_urls: List[str] = []
    owner_name: Optional[str] = None
    agent_id: Optional[UUID] = None
    agent_name: Optional[str] = None
    drive_link: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    media_assets: List[MediaAssetRead] = []


class ListingRead(ListingPublicRead):
    """Full listing for admins and for the owner's own listings."""
    owner_phone: Optional[str] = None
    owner_email: Optional[str] = None
    rejection_reason: Optional[str] = None
    admin_decision_message: Optional[str] = None
    reviewed_at: Optional[datetime] = None


class ListingListRead(BaseModel):
    """Compact listing representation for list and search responses."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: Optional[str] = None
    address: Optional[str] = None
    price: Optional[Decimal] = None
    category: ListingCategory
    house_type: Optional[HouseType] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area_sq_ft: Optional[float] = None
    status: ListingStatus
    image_url: Optional[str] = None
    created_at: datetime


class PaginatedResponse(BaseModel):
    """Generic paginated response wrapper."""
    items: List[ListingListRead]
    total: int
    page: int
    page_size: int
    pages: int


class ApproveRequest(BaseModel):
    message: Optional[str] = Field(None, max_length=5000)


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=5000)
