"""Dashboard client configuration using pydantic-settings."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dashboard.confirmation import DeletePolicy


class DashboardSettings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_url: str = Field(default="http://localhost:8000", validation_alias="MARKD_API_URL")
    api_timeout: float = Field(default=30.0, validation_alias="MARKD_API_TIMEOUT")

    # Second click within the window confirms a delete; "immediate" skips it
    delete_policy: DeletePolicy = Field(
        default=DeletePolicy.CONFIRM, validation_alias="MARKD_DELETE_POLICY",
    )
    delete_confirm_seconds: float = Field(
        default=3.0, validation_alias="MARKD_DELETE_CONFIRM_SECONDS",
    )

    # Shared with the API so the form rejects what the server would reject
    max_title_length: int = Field(default=500, validation_alias="VITE_MAX_TITLE_LENGTH")
    max_url_length: int = Field(default=2048, validation_alias="VITE_MAX_URL_LENGTH")

    # Used to build the identity provider's logout URL
    auth0_domain: str = Field(default="", validation_alias="VITE_AUTH0_DOMAIN")
    auth0_client_id: str = Field(default="", validation_alias="VITE_AUTH0_CLIENT_ID")
    frontend_url: str = Field(
        default="http://localhost:5173", validation_alias="VITE_FRONTEND_URL",
    )
