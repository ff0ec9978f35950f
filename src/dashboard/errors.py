"""Errors raised at the dashboard's gateway boundary."""


class GatewayError(Exception):
    """
    A request to the bookmark service failed.

    ``message`` is safe to show next to the control that triggered the request.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NoRowsDeletedError(GatewayError):
    """A delete succeeded at the transport level but removed nothing."""

    def __init__(self, bookmark_id: str) -> None:
        self.bookmark_id = bookmark_id
        super().__init__(
            "Bookmark could not be deleted. "
            "It may already be gone or belong to another account.",
        )
