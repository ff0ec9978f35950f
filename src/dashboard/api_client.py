"""HTTP client for the Markd API, used as the dashboard's gateway."""
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from typing import Any, Self, TypeVar
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from dashboard.config import DashboardSettings
from dashboard.errors import GatewayError
from dashboard.models import Bookmark, RealtimeEvent, UserProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")

REALTIME_EVENTS = frozenset({"INSERT", "DELETE"})
UNEXPECTED_RESPONSE = "Unexpected response from the bookmark service"

# The change stream is idle for long stretches; only connecting is bounded
STREAM_TIMEOUT = httpx.Timeout(30.0, read=None)


def _get_headers(token: str | None) -> dict[str, str]:
    """Get common headers for API requests."""
    headers = {"X-Request-Source": "dashboard"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of an API error response."""
    try:
        detail = response.json().get("detail")
    except ValueError:
        detail = None
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        # FastAPI validation errors: [{"loc": [...], "msg": "Value error, ..."}]
        message = str(detail[0].get("msg", ""))
        return message.removeprefix("Value error, ") or "Invalid request"
    return f"Request failed with status {response.status_code}"


async def iter_sse(lines: AsyncIterator[str]) -> AsyncGenerator[tuple[str, str]]:
    """
    Parse Server-Sent Events from a stream of lines.

    Yields ``(event, data)`` per dispatched message. Comment lines are skipped
    and multi-line data is joined with newlines.
    """
    event_name = "message"
    data_lines: list[str] = []
    async for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line:
            if data_lines:
                yield event_name, "\n".join(data_lines)
            event_name = "message"
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if name == "event":
            event_name = value
        elif name == "data":
            data_lines.append(value)


class BookmarksApiClient:
    """
    Authenticated access to the bookmark endpoints.

    Every failure surfaces as ``GatewayError`` carrying a message fit for display.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        auth0_domain: str = "",
        auth0_client_id: str = "",
        frontend_url: str = "",
    ) -> None:
        self._client = client
        self._token = token
        self._auth0_domain = auth0_domain
        self._auth0_client_id = auth0_client_id
        self._frontend_url = frontend_url

    @classmethod
    def from_settings(cls, settings: DashboardSettings, token: str | None) -> Self:
        """Build a client with its own connection pool from dashboard settings."""
        client = httpx.AsyncClient(base_url=settings.api_url, timeout=settings.api_timeout)
        return cls(
            client,
            token=token,
            auth0_domain=settings.auth0_domain,
            auth0_client_id=settings.auth0_client_id,
            frontend_url=settings.frontend_url,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(
                method, path, headers=_get_headers(self._token), **kwargs,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.warning("%s %s failed: %s", method, path, message)
            raise GatewayError(message, e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise GatewayError("Could not reach the bookmark service") from e
        return response

    async def _request_json(
        self,
        method: str,
        path: str,
        parse: Callable[[Any], T],
        **kwargs: Any,
    ) -> T:
        """Send a request and parse its JSON body; a malformed body is a GatewayError."""
        response = await self._request(method, path, **kwargs)
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError) as e:
            # ValueError covers both JSONDecodeError and pydantic's ValidationError
            logger.warning("%s %s returned an unexpected body: %s", method, path, e)
            raise GatewayError(UNEXPECTED_RESPONSE, response.status_code) from e

    async def get_me(self) -> UserProfile:
        """Get the authenticated user's profile."""
        return await self._request_json("GET", "/users/me", UserProfile.model_validate)

    async def fetch_all(self) -> list[Bookmark]:
        """All of the user's bookmarks, newest first."""
        return await self._request_json(
            "GET", "/bookmarks/", lambda body: [Bookmark.model_validate(item) for item in body],
        )

    async def insert(self, title: str, url: str) -> Bookmark:
        """Create a bookmark and return the canonical record."""
        return await self._request_json(
            "POST", "/bookmarks/", Bookmark.model_validate, json={"title": title, "url": url},
        )

    async def delete(self, bookmark_id: str, user_id: str) -> list[Bookmark]:
        """Delete by id and owner; return the rows actually removed."""
        return await self._request_json(
            "DELETE",
            f"/bookmarks/{bookmark_id}",
            lambda body: [Bookmark.model_validate(item) for item in body["deleted"]],
            params={"user_id": user_id},
        )

    async def changes(self) -> AsyncGenerator[RealtimeEvent]:
        """
        Subscribe to the realtime change stream.

        The HTTP stream stays open until the generator is closed or the server
        ends it. Non-change messages are ignored.
        """
        try:
            async with self._client.stream(
                "GET",
                "/bookmarks/changes",
                headers=_get_headers(self._token),
                timeout=STREAM_TIMEOUT,
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise GatewayError(_error_message(response), response.status_code)
                async for event_name, data in iter_sse(response.aiter_lines()):
                    if event_name not in REALTIME_EVENTS:
                        continue
                    try:
                        event = RealtimeEvent.model_validate_json(data)
                    except ValidationError as e:
                        logger.warning(
                            "Skipping malformed %s event: %s", event_name, e.errors()[:1],
                        )
                        continue
                    yield event
        except httpx.HTTPError as e:
            raise GatewayError("Realtime connection lost") from e

    def sign_out(self) -> str:
        """
        Forget the bearer token and return where to send the browser next.

        With Auth0 configured this is the tenant's logout endpoint, which ends
        the provider session and redirects back to the login page.
        """
        self._token = None
        login_url = f"{self._frontend_url.rstrip('/')}/login"
        if not self._auth0_domain:
            return login_url
        query = urlencode({"client_id": self._auth0_client_id, "returnTo": login_url})
        return f"https://{self._auth0_domain}/v2/logout?{query}"
