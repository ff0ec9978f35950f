"""Add-bookmark form: field validation and submission state."""
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from schemas.validators import is_valid_url, normalize_url


class FormField(StrEnum):
    """Fields of the add-bookmark form."""

    TITLE = "title"
    URL = "url"


class FieldErrorCode(StrEnum):
    """Why a field was rejected."""

    TITLE_REQUIRED = "title_required"
    TITLE_TOO_LONG = "title_too_long"
    URL_REQUIRED = "url_required"
    URL_TOO_LONG = "url_too_long"
    URL_INVALID = "url_invalid"


FIELD_ERROR_MESSAGES = {
    FieldErrorCode.TITLE_REQUIRED: "Title is required",
    FieldErrorCode.URL_REQUIRED: "URL is required",
    FieldErrorCode.URL_INVALID: "Please enter a valid URL",
}


@dataclass(frozen=True)
class FieldError:
    """A validation failure tied to the field that caused it."""

    field: FormField
    code: FieldErrorCode
    message: str


@dataclass(frozen=True)
class BookmarkInput:
    """Validated, normalized form input."""

    title: str
    url: str


@dataclass(frozen=True)
class ValidationResult:
    """Either a normalized input or the errors that prevented one."""

    value: BookmarkInput | None
    errors: dict[FormField, FieldError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the input passed validation."""
        return self.value is not None


def _error(form_field: FormField, code: FieldErrorCode, message: str | None = None) -> FieldError:
    return FieldError(
        field=form_field,
        code=code,
        message=message or FIELD_ERROR_MESSAGES[code],
    )


def validate_bookmark_input(
    title: str,
    url: str,
    max_title_length: int = 500,
    max_url_length: int = 2048,
) -> ValidationResult:
    """
    Validate raw form input.

    The title is trimmed and must be non-empty. The URL is normalized (see
    ``normalize_url``) and must parse as an absolute URL. Both fields are
    checked so every problem is reported at once. The length limits mirror the
    API's, so input the API would reject never leaves the form.
    """
    errors: dict[FormField, FieldError] = {}

    clean_title = title.strip()
    if not clean_title:
        errors[FormField.TITLE] = _error(FormField.TITLE, FieldErrorCode.TITLE_REQUIRED)
    elif len(clean_title) > max_title_length:
        errors[FormField.TITLE] = _error(
            FormField.TITLE,
            FieldErrorCode.TITLE_TOO_LONG,
            f"Title must be at most {max_title_length:,} characters",
        )

    normalized = normalize_url(url)
    if not normalized:
        errors[FormField.URL] = _error(FormField.URL, FieldErrorCode.URL_REQUIRED)
    elif len(normalized) > max_url_length:
        errors[FormField.URL] = _error(
            FormField.URL,
            FieldErrorCode.URL_TOO_LONG,
            f"URL must be at most {max_url_length:,} characters",
        )
    elif not is_valid_url(normalized):
        errors[FormField.URL] = _error(FormField.URL, FieldErrorCode.URL_INVALID)

    if errors:
        return ValidationResult(value=None, errors=errors)
    return ValidationResult(value=BookmarkInput(title=clean_title, url=normalized))


class AddBookmarkForm:
    """
    State of the add-bookmark form.

    ``on_add`` receives the validated title and normalized URL and returns an
    error message, or None on success. Field errors are shown next to their
    field; an ``on_add`` error is shown once above the submit button.
    """

    def __init__(
        self,
        on_add: Callable[[str, str], Awaitable[str | None]],
        max_title_length: int = 500,
        max_url_length: int = 2048,
    ) -> None:
        self._on_add = on_add
        self._max_title_length = max_title_length
        self._max_url_length = max_url_length
        self.title = ""
        self.url = ""
        self.errors: dict[FormField, str] = {}
        self.api_error: str | None = None
        self.is_pending = False

    @property
    def submit_label(self) -> str:
        """Text of the submit button."""
        return "Saving…" if self.is_pending else "Save bookmark"

    def set_title(self, value: str) -> None:
        """Update the title and clear its error."""
        self.title = value
        self.errors.pop(FormField.TITLE, None)

    def set_url(self, value: str) -> None:
        """Update the URL and clear its error."""
        self.url = value
        self.errors.pop(FormField.URL, None)

    async def submit(self) -> bool:
        """
        Validate and submit the form.

        Returns True when the bookmark was saved; the fields are then cleared.
        Invalid input never reaches ``on_add``.
        """
        if self.is_pending:
            return False
        self.api_error = None

        result = validate_bookmark_input(
            self.title, self.url, self._max_title_length, self._max_url_length,
        )
        self.errors = {name: error.message for name, error in result.errors.items()}
        if result.value is None:
            return False

        self.is_pending = True
        try:
            error = await self._on_add(result.value.title, result.value.url)
        finally:
            self.is_pending = False

        if error:
            self.api_error = error
            return False

        self.title = ""
        self.url = ""
        self.errors = {}
        return True
