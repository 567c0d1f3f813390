"""Request signing for authenticated exchange calls.

Signature = base64(HMAC-SHA512(query_string, secret_key)), sent together
with the access key and a per-request nonce in the `Access-Key`, `Nonce`
and `Signature` headers.
"""

import base64
import hashlib
import hmac
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Credentials:
    """Exchange API key pair. The secret never appears in repr or logs."""

    access_key: str
    secret_key: str = field(repr=False)

    @property
    def user_id(self) -> str:
        """Stable user identifier derived from the access key."""
        return self.access_key[:8]

    def __bool__(self) -> bool:
        return bool(self.access_key and self.secret_key)


def build_query_string(params: Mapping[str, Any] | None) -> str:
    """Canonical `key=value&...` string in the caller's insertion order.

    Values are not URL-encoded; None values are skipped.
    """
    if not params:
        return ""
    return "&".join(f"{key}={value}" for key, value in params.items() if value is not None)


def sign(payload: str, secret_key: str) -> str:
    """Base64-encoded HMAC-SHA512 of the payload."""
    digest = hmac.new(secret_key.encode("utf-8"), payload.encode("utf-8"), hashlib.sha512).digest()
    return base64.b64encode(digest).decode("ascii")


def auth_headers(
    credentials: Credentials,
    params: Mapping[str, Any] | None = None,
    nonce: str | None = None,
) -> dict[str, str]:
    """Authentication headers for one request."""
    return {
        "Access-Key": credentials.access_key,
        "Nonce": nonce or str(uuid.uuid4()),
        "Signature": sign(build_query_string(params), credentials.secret_key),
    }
