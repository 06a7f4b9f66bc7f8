"""SQLAlchemy models for the listing desk."""
from app.models.listing_model import HouseType, Listing, ListingCategory, ListingStatus
from app.models.media_model import MediaAsset
from app.models.user_model import User

__all__ = [
    "Listing",
    "ListingStatus",
    "ListingCategory",
    "HouseType",
    "MediaAsset",
    "User",
]
