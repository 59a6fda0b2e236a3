"""
Claim token generation.

Tokens are 256 bits from the ``secrets`` CSPRNG, hex encoded. They are
bearer credentials: anything that needs to refer to a token in logs or
responses uses its fingerprint instead.
"""

import hashlib
import re
import secrets

TOKEN_BYTES = 32
TOKEN_LENGTH = TOKEN_BYTES * 2

_TOKEN_PATTERN = re.compile(rf"[0-9a-f]{{{TOKEN_LENGTH}}}")


def generate_token() -> str:
    """Return a new 64-character lowercase hex token."""
    return secrets.token_hex(TOKEN_BYTES)


def fingerprint(token: str) -> str:
    """Short, non-reversible identifier for a token (first 12 hex of SHA-256)."""
    return hashlib.sha256(token.encode()).hexdigest()[:12]


def is_well_formed(token: str) -> bool:
    return _TOKEN_PATTERN.fullmatch(token) is not None
