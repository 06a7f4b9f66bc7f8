"""Listing SQLAlchemy model — a property record moving through moderation."""
import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.media_model import MediaAsset
    from app.models.user_model import User


class ListingStatus(str, enum.Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    REJECTED = "rejected"


class ListingCategory(str, enum.Enum):
    SALE = "sale"
    RENT = "rent"


class HouseType(str, enum.Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    VILLA = "villa"
    TOWNHOUSE = "townhouse"
    STUDIO = "studio"
    CONDO = "condo"
    LAND = "land"
    COMMERCIAL = "commercial"


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Listing(Base):
    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    title: Mapped[Optional[str]] = mapped_column(String(500))
    description: Mapped[Optional[str]] = mapped_column(Text)
    address: Mapped[Optional[str]] = mapped_column(String(500))
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    category: Mapped[ListingCategory] = mapped_column(
        _enum_column(ListingCategory), default=ListingCategory.SALE, comment="sale, rent"
    )
    house_type: Mapped[Optional[HouseType]] = mapped_column(_enum_column(HouseType), nullable=True)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer)
    bathrooms: Mapped[Optional[int]] = mapped_column(Integer)
    area_sq_ft: Mapped[Optional[float]] = mapped_column(Float)

    status: Mapped[ListingStatus] = mapped_column(
        _enum_column(ListingStatus),
        default=ListingStatus.AVAILABLE,
        index=True,
        comment="pending, available, rejected",
    )

    # Thumbnail shown on cards; always one of the media paths or an admin-set URL
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))
    facilities: Mapped[List[str]] = mapped_column(JSON, default=list)
    house_rules: Mapped[Optional[str]] = mapped_column(Text)

    owner_name: Mapped[Optional[str]] = mapped_column(String(255))
    owner_phone: Mapped[Optional[str]] = mapped_column(String(50))
    owner_email: Mapped[Optional[str]] = mapped_column(String(320), index=True)

    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    drive_link: Mapped[Optional[str]] = mapped_column(String(2048), comment="External document/folder link")

    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    admin_decision_message: Mapped[Optional[str]] = mapped_column(Text)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    media_assets: Mapped[List["MediaAsset"]] = relationship(
        back_populates="listing",
        cascade="all, delete-orphan",
        order_by="MediaAsset.position",
        lazy="selectin",
    )
    agent: Mapped[Optional["User"]] = relationship(lazy="selectin")

    __table_args__ = (
        Index("ix_listings_category", "category"),
        Index("ix_listings_price", "price"),
        Index("ix_listings_created_at", "created_at"),
    )

    @property
    def image_urls(self) -> List[str]:
        """Gallery paths, derived from the media assets in display order."""
        return [media.file_path for media in self.media_assets]

    @property
    def agent_name(self) -> Optional[str]:
        return self.agent.name if self.agent else None

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title='{self.title}', status={self.status})>"
