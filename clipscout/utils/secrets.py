"""Helpers for reading credentials out of settings."""

from __future__ import annotations

from pydantic import SecretStr

from ..errors import MissingCredentials


def secret_value(value: SecretStr | str | None) -> str | None:
    """Return the plaintext secret stripped of whitespace, or None when blank."""
    if value is None:
        return None
    raw = value.get_secret_value() if isinstance(value, SecretStr) else value
    stripped = raw.strip()
    return stripped or None


def require_secret(value: SecretStr | str | None, platform: str, variable: str) -> str:
    """Like ``secret_value`` but raises ``MissingCredentials`` when unset."""
    plain = secret_value(value)
    if plain is None:
        raise MissingCredentials(platform, variable)
    return plain
