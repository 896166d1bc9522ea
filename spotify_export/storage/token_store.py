"""
Persists OAuth tokens (and a pending PKCE verifier) between invocations.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ValidationError

log = logging.getLogger(__name__)


class TokenSet(BaseModel):
    access_token: str | None = None
    refresh_token: str | None = None
    # Epoch seconds
    expires_at: float | None = None
    code_verifier: str | None = None


class TokenStore:
    """Stores a `TokenSet` as JSON with owner-only permissions."""

    FILE_NAME = "tokens.json"

    def __init__(self, config_dir_path: Path):
        self.path = config_dir_path / self.FILE_NAME

    def load(self) -> TokenSet:
        """Returns the stored tokens, or an empty set."""
        if not self.path.is_file():
            return TokenSet()
        try:
            with open(self.path, encoding="utf-8") as f:
                return TokenSet.model_validate(json.load(f))
        except (json.JSONDecodeError, OSError, ValidationError) as e:
            log.warning(f"Could not read stored tokens, ignoring them: {e}")
            return TokenSet()

    def save(self, tokens: TokenSet) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(tokens.model_dump_json())
            if os.name != "nt":
                os.chmod(self.path, 0o600)
        except OSError as e:
            log.warning(f"Could not save tokens: {e}")

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            log.warning(f"Could not remove stored tokens: {e}")
