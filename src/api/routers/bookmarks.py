"""Bookmark endpoints: list, create, delete, and the realtime change stream."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_change_feed,
    get_current_user,
    get_settings,
)
from core.config import Settings
from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkDeleteResponse, BookmarkResponse
from services import bookmark_service
from services.bookmark_service import BOOKMARKS_TABLE
from services.change_feed import ChangeFeed
from services.exceptions import OwnershipError

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.get("/", response_model=list[BookmarkResponse])
async def list_bookmarks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[BookmarkResponse]:
    """List all of the current user's bookmarks, newest first."""
    bookmarks = await bookmark_service.list_bookmarks(db, current_user.id)
    return [BookmarkResponse.model_validate(b) for b in bookmarks]


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Create a new bookmark and return the canonical record."""
    bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    return BookmarkResponse.model_validate(bookmark)


@router.get("/changes")
async def stream_changes(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """
    Server-Sent Events stream of the current user's bookmark changes.

    Each message is ``event: INSERT`` or ``event: DELETE`` with a JSON body of
    the form ``{"table": "bookmarks", "type": ..., "record": {...}}``.
    Comment lines are sent on connect and as heartbeats.
    """
    # Release the pooled connection; the stream may stay open for hours
    await db.commit()
    subscription = feed.subscribe(BOOKMARKS_TABLE, user_id=current_user.id)
    return StreamingResponse(
        feed.stream(subscription, heartbeat_seconds=settings.change_feed_heartbeat_seconds),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.delete("/{bookmark_id}", response_model=BookmarkDeleteResponse)
async def delete_bookmark(
    bookmark_id: UUID,
    user_id: UUID | None = Query(
        default=None,
        description="Owner the client believes holds the bookmark; must be the caller",
    ),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkDeleteResponse:
    """
    Delete a bookmark by id and owner.

    Returns the deleted rows; an empty list means nothing matched.
    """
    try:
        deleted = await bookmark_service.delete_bookmark(
            db, current_user.id, bookmark_id, claimed_owner_id=user_id,
        )
    except OwnershipError:
        raise HTTPException(status_code=403, detail="You do not own this bookmark")
    return BookmarkDeleteResponse(
        deleted=[BookmarkResponse.model_validate(b) for b in deleted],
    )
