"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_OUTPUT_PATH = "spotify-export.json"

# Spotify caps list endpoints at 50 items per request
MAX_PAGE_SIZE = 50


class ExportConfig(BaseModel):
    """A validated configuration model for the application."""

    # Spotify application
    client_id: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI

    # Export settings
    market: str = "US"
    page_size: int = 10
    output_path: str = DEFAULT_OUTPUT_PATH

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("market")
    @classmethod
    def validate_market(cls, v: str) -> str:
        """Markets are ISO 3166-1 alpha-2 country codes."""
        v = v.upper()
        if len(v) != 2 or not v.isalpha():
            raise ValueError(f"Market must be a 2-letter country code, got: {v!r}")
        return v

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v < 1 or v > MAX_PAGE_SIZE:
            raise ValueError(f"Page size must be between 1 and {MAX_PAGE_SIZE}.")
        return v

    @field_validator("redirect_uri")
    @classmethod
    def validate_redirect_uri(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Redirect URI must be an http(s) URL.")
        return v

    @field_validator("output_path")
    @classmethod
    def validate_output_path(cls, v: str) -> str:
        if not v:
            raise ValueError("Output path cannot be empty.")
        return v

    @model_validator(mode="after")
    def validate_client_id(self) -> "ExportConfig":
        """A Spotify client ID is a 32-character hex string."""
        if not self.client_id:
            raise ValueError(
                "Spotify client ID is not configured. Run 'spotify-export init'."
            )
        if len(self.client_id) != 32 or not all(
            c in "0123456789abcdefABCDEF" for c in self.client_id
        ):
            raise ValueError(
                f"Client ID must be 32 hexadecimal characters, got: {self.client_id}"
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
