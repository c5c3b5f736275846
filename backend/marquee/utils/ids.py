"""Identifier and token generation."""

import secrets


def generate_id() -> str:
    """25-character, url-safe, collision-resistant primary key ("c" + 24 hex)."""
    return "c" + secrets.token_hex(12)


def generate_token() -> str:
    """Opaque token for invites and sessions (same shape as ids)."""
    return generate_id()


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"
