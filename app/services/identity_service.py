"""Caller identity and listing ownership.

The workflow never inspects the auth mechanism; it receives an IdentityContext
built by the HTTP layer (see app.api.deps.get_identity) and resolves owner
attribution from it.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationRequiredError, OwnerIdentityError
from app.models.listing_model import Listing
from app.models.user_model import User


@dataclass(frozen=True)
class IdentityContext:
    """Who is calling. ``email`` is None for anonymous callers."""
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.email and self.email.strip())

    @classmethod
    def anonymous(cls) -> "IdentityContext":
        return cls(email=None)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_owner_email(identity: Optional[IdentityContext], declared_email: Optional[str]) -> str:
    """Return the email recorded as the listing owner.

    An authenticated caller is always the owner, whatever the form says.
    Anonymous callers are trusted for their self-reported address.
    """
    if identity is not None and identity.is_authenticated:
        return identity.email.strip()
    email = _clean(declared_email)
    if email is None:
        raise OwnerIdentityError("Owner email could not be determined from session or request.")
    return email


def require_email(identity: Optional[IdentityContext]) -> str:
    if identity is None or not identity.is_authenticated:
        raise AuthenticationRequiredError("Authentication required")
    return identity.email.strip()


async def find_user_by_email(db: AsyncSession, email: Optional[str]) -> Optional[User]:
    email = _clean(email)
    if email is None:
        return None
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def find_user_by_display_name(db: AsyncSession, name: Optional[str]) -> Optional[User]:
    """Exact display-name match; with duplicates the oldest account wins."""
    if not name:
        return None
    result = await db.execute(
        select(User).where(User.name == name).order_by(User.created_at, User.id).limit(1)
    )
    return result.scalars().first()


async def list_listings_by_owner(db: AsyncSession, owner_email: str) -> Sequence[Listing]:
    """Listings whose recorded owner email equals ``owner_email``, newest first."""
    result = await db.execute(
        select(Listing).where(Listing.owner_email == owner_email).order_by(Listing.created_at.desc())
    )
    return result.scalars().all()
