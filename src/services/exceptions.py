"""Shared exceptions for service layer operations."""
from uuid import UUID


class OwnershipError(Exception):
    """
    Raised when a mutation names an owner other than the authenticated user.

    Listing is already scoped to the caller, so a mismatch here means the client
    holds a stale or forged identifier.
    """

    def __init__(self, bookmark_id: UUID, claimed_owner_id: UUID) -> None:
        self.bookmark_id = bookmark_id
        self.claimed_owner_id = claimed_owner_id
        super().__init__(
            f"Bookmark {bookmark_id} cannot be modified on behalf of user {claimed_owner_id}",
        )
