#!/usr/bin/env python3
"""License token inspection.

A license token is a compact signed token (`header.payload.signature`, each
segment base64url without padding). Only the payload is read here; it maps
component names to their validity window:

    {"finex": {"creation": 1700000000, "expire": 1731536000}}

The signature is *not* verified. Tokens come from the secret store, which
only ever holds licenses issued by the licensing service.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, NamedTuple

from core.errors import (
    InvalidFieldError,
    MalformedTokenError,
    MissingComponentError,
    TokenDecodeError,
)


_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")


class LicenseWindow(NamedTuple):
    """Validity window of one component, in seconds since the epoch."""

    expire_at: int
    created_at: int

    @property
    def lifetime(self) -> int:
        return self.expire_at - self.created_at

    def elapsed_fraction(self, now: float) -> float:
        if self.lifetime <= 0:
            return 1.0
        return (now - self.created_at) / self.lifetime


def _b64url_decode(segment: str) -> bytes:
    if not _BASE64URL_RE.match(segment):
        raise TokenDecodeError("License payload is not valid base64url")
    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise TokenDecodeError(f"License payload is not valid base64url: {e}") from e


def _int_field(claims: Any, name: str, component: str) -> int:
    value = claims.get(name)
    # bool is an int subclass; reject it along with floats and strings.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFieldError(
            f"License field {component}.{name} is not an integer: {value!r}"
        )
    return value


def decode_payload(token: str) -> dict:
    """Decode the payload segment of a license token into a dict."""

    if not isinstance(token, str):
        raise MalformedTokenError("Unexpected license format")
    segments = token.strip().split(".")
    if len(segments) != 3:
        raise MalformedTokenError(
            f"Unexpected license format: expected 3 segments, got {len(segments)}"
        )

    raw = _b64url_decode(segments[1])
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise TokenDecodeError(f"License payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise TokenDecodeError("License payload is not a JSON object")
    return payload


def parse_license(token: str, component: str) -> LicenseWindow:
    """Extract `(expire_at, created_at)` for `component` from a license token.

    Raises:
        MalformedTokenError: token does not have three segments.
        TokenDecodeError: payload is not base64url JSON object.
        MissingComponentError: component is not present in the payload.
        InvalidFieldError: expire/creation missing, not integers, or
            expire before creation. A zero-length window is returned as is
            and is always due for renewal.
    """

    payload = decode_payload(token)

    claims = payload.get(component)
    if not isinstance(claims, dict):
        raise MissingComponentError(f"License has no entry for component {component!r}")

    expire_at = _int_field(claims, "expire", component)
    created_at = _int_field(claims, "creation", component)
    if expire_at < created_at:
        raise InvalidFieldError(
            f"License for {component!r} expires ({expire_at}) "
            f"before creation ({created_at})"
        )

    return LicenseWindow(expire_at=expire_at, created_at=created_at)


__all__ = ["LicenseWindow", "decode_payload", "parse_license"]
