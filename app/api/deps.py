"""API dependencies — database session, caller identity, admin key, collaborators.

Identity: authentication happens upstream (gateway / auth proxy). It forwards
the verified caller email in the header named by IDENTITY_HEADER
(X-Authenticated-Email by default). No header means an anonymous caller.

Admin routes additionally require the X-API-Key header to match API_KEY.
"""
import secrets
from functools import lru_cache
from typing import AsyncGenerator, Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import async_session_factory
from app.services.identity_service import IdentityContext
from app.services.notification_service import DecisionNotifier, build_notifier
from app.services.storage_service import FileStorage, build_file_storage


# ---------------------------------------------------------------------------
# Database session dependency
# ---------------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for request scope."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------

def get_identity(request: Request) -> IdentityContext:
    """Build the caller identity from the forwarded header."""
    email = request.headers.get(settings.identity_header)
    if email and email.strip() and email.strip().lower() != "anonymoususer":
        return IdentityContext(email=email.strip())
    return IdentityContext.anonymous()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@lru_cache
def get_file_storage() -> FileStorage:
    return build_file_storage()


@lru_cache
def get_notifier() -> DecisionNotifier:
    return build_notifier()


# ---------------------------------------------------------------------------
# API Key authentication (admin routes)
# ---------------------------------------------------------------------------

_api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,  # False to return a custom 401 instead of 403
    description="Admin API key. Configured via API_KEY in .env",
)


async def verify_api_key(
    api_key: Annotated[str | None, Security(_api_key_header)],
) -> str:
    """Validate the X-API-Key header with a constant-time comparison.

    Raises:
        HTTPException 401: key missing or wrong.
        HTTPException 500: API_KEY not configured on the server.
    """
    if not settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured (API_KEY missing).",
        )

    if not api_key or not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key. Use the X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


# Shorthand for router dependencies
RequireApiKey = Depends(verify_api_key)
