"""Service layer for bookmark persistence operations."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from schemas.bookmark import BookmarkCreate, BookmarkResponse
from services.change_feed import ChangeEvent, ChangeType, record_change
from services.exceptions import OwnershipError

logger = logging.getLogger(__name__)

BOOKMARKS_TABLE = Bookmark.__tablename__


def _change_event(change_type: ChangeType, bookmark: Bookmark) -> ChangeEvent:
    return ChangeEvent(
        table=BOOKMARKS_TABLE,
        type=change_type,
        user_id=bookmark.user_id,
        record=BookmarkResponse.model_validate(bookmark).model_dump(mode="json"),
    )


async def list_bookmarks(db: AsyncSession, user_id: UUID) -> list[Bookmark]:
    """
    Fetch every bookmark owned by a user, newest first.

    Ties on created_at fall back to id, which is time-ordered (UUIDv7).
    """
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc()),
    )
    return list(result.scalars().all())


async def create_bookmark(
    db: AsyncSession,
    user_id: UUID,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    Note: Uses flush(), not commit. Session generator handles commit at request
    end, and the INSERT change event is published only after that commit.
    """
    bookmark = Bookmark(user_id=user_id, title=data.title, url=data.url)
    db.add(bookmark)
    await db.flush()
    await db.refresh(bookmark)
    record_change(db, _change_event(ChangeType.INSERT, bookmark))
    logger.info("Created bookmark %s for user %s", bookmark.id, user_id)
    return bookmark


async def delete_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    claimed_owner_id: UUID | None = None,
) -> list[Bookmark]:
    """
    Delete a bookmark matching both its id and its owner.

    Args:
        db: Database session.
        user_id: The authenticated user; only their rows can match.
        bookmark_id: The bookmark to delete.
        claimed_owner_id: Owner id sent by the client. Must equal user_id when given.

    Returns:
        The deleted rows. Empty when nothing matched, so callers can tell a
        no-op apart from a real delete.

    Raises:
        OwnershipError: If claimed_owner_id names a different user.
    """
    if claimed_owner_id is not None and claimed_owner_id != user_id:
        logger.warning(
            "User %s attempted to delete bookmark %s as user %s",
            user_id,
            bookmark_id,
            claimed_owner_id,
        )
        raise OwnershipError(bookmark_id, claimed_owner_id)

    result = await db.execute(
        select(Bookmark).where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    bookmarks = list(result.scalars().all())
    for bookmark in bookmarks:
        record_change(db, _change_event(ChangeType.DELETE, bookmark))
        await db.delete(bookmark)
    await db.flush()
    return bookmarks
