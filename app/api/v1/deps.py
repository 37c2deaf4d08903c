"""
FastAPI dependencies — database session, auth guards and the wiring of the
attendance pipeline.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import TTLCache
from app.core.config import settings
from app.core.security import decode_access_token
from app.db.session import async_session_factory
from app.models.user import User
from app.repositories.store import AttendanceStore
from app.services.attendance_pipeline import AttendancePipeline
from app.services.face_matcher import FaceMatcher, HttpImageEmbedder, ImageEmbedder
from app.services.fraud_analyzer import FraudAnalyzer
from app.services.location_resolver import LocationResolver
from app.services.notifications import NotificationService
from app.services.points_engine import PointsRuleEngine

# auto_error=False so we can fall back to the cookie when the header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up user."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        # Cookie may be "Bearer <token>" or just "<token>"
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ", 1)[1]
        else:
            final_token = access_token

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    user_id: str | None = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise credentials_exc

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if user is None:
        raise credentials_exc
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject inactive accounts."""
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user account")
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Only allow admin role to proceed."""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


# ── Attendance pipeline ─────────────────────────────────────────────
def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def get_store(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
) -> AttendanceStore:
    return AttendanceStore(db, cache, cache_ttl=settings.CACHE_TTL_SECONDS)


def get_image_embedder() -> ImageEmbedder:
    return HttpImageEmbedder.from_settings(settings)


def get_face_matcher(embedder: ImageEmbedder = Depends(get_image_embedder)) -> FaceMatcher:
    return FaceMatcher(embedder)


def get_pipeline(
    store: AttendanceStore = Depends(get_store),
    face_matcher: FaceMatcher = Depends(get_face_matcher),
) -> AttendancePipeline:
    return AttendancePipeline(
        store=store,
        resolver=LocationResolver(store),
        face_matcher=face_matcher,
        fraud_analyzer=FraudAnalyzer(),
        points_engine=PointsRuleEngine(
            store, one_award_per_day=settings.ONE_CHECK_IN_AWARD_PER_DAY
        ),
        notifier=NotificationService(store.db, settings),
    )
