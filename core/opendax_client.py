#!/usr/bin/env python3
"""Licensing endpoint client.

Only one call matters to the daemon: asking the platform for a fresh
license. The request is authenticated twice over:
- `PlatformID` header carrying the platform id from the secret store
- `Authorization: Bearer <jwt>` signed with the platform's RS256 key

Important:
- The request is never retried here. A failed exchange is retried by the
  next polling tick.
- Redirects are refused. Following one can drop the Authorization header.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from core.errors import (
    InvalidBaseURLError,
    NetworkError,
    ResponseDecodeError,
    UnexpectedStatusError,
)


logger = logging.getLogger("license-daemon")

NEW_LICENSE_PATH = "/api/v2/opx/sonic/licenses/new"


@dataclass
class LicenseResponse:
    """Replacement license issued by the licensing endpoint."""

    license: str
    expire: Optional[int] = None

    @classmethod
    def from_payload(cls, data: Any) -> "LicenseResponse":
        if not isinstance(data, dict):
            raise ResponseDecodeError("License response is not a JSON object")
        lic = data.get("license")
        if not isinstance(lic, str) or not lic.strip():
            raise ResponseDecodeError("License response has no license string")
        expire = data.get("expire")
        if isinstance(expire, bool) or not isinstance(expire, int):
            # expire is informational; keep the issued license regardless.
            logger.warning("License response expire is not an integer: %r", expire)
            expire = None
        return cls(license=lic, expire=expire)


def build_license_url(base_addr: Optional[str], path: str = NEW_LICENSE_PATH) -> str:
    """Join the configured base address with `path`.

    The base may carry its own path prefix (e.g. a reverse proxy mount), which
    is kept. Query and fragment are preserved.
    """

    if not base_addr or not isinstance(base_addr, str):
        raise InvalidBaseURLError("Licensing base address is not set")
    try:
        parts = urlsplit(base_addr.strip())
        # Accessing port validates it (non-numeric or out of range).
        parts.port
        hostname = parts.hostname
    except ValueError as e:
        raise InvalidBaseURLError(f"Invalid licensing base address {base_addr!r}: {e}") from e
    if parts.scheme not in {"http", "https"} or not hostname:
        raise InvalidBaseURLError(f"Invalid licensing base address {base_addr!r}")

    joined = posixpath.normpath(posixpath.join("/", parts.path, path.lstrip("/")))
    return urlunsplit((parts.scheme, parts.netloc, joined, parts.query, parts.fragment))


class OpendaxClient:
    """Client for the platform licensing API."""

    def __init__(
        self,
        base_addr: str,
        timeout_s: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            base_addr: Base URL of the platform (e.g. https://example.com)
            timeout_s: Request timeout in seconds; None waits indefinitely
            session: Optional pre-configured `requests.Session`
        """
        self.base_addr = base_addr
        self.timeout_s = timeout_s

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @property
    def license_url(self) -> str:
        return build_license_url(self.base_addr)

    def request_new_license(self, platform_id: str, assertion: str) -> LicenseResponse:
        """POST to the new-license endpoint and decode the 201 response.

        Raises:
            InvalidBaseURLError: the base address is not an http(s) URL.
            NetworkError: the request could not be completed.
            UnexpectedStatusError: any status other than 201 Created.
            ResponseDecodeError: the 201 body is not a license document.
        """

        url = self.license_url
        headers = {
            "PlatformID": platform_id,
            "Authorization": f"Bearer {assertion}",
        }

        try:
            response = self.session.request(
                "POST",
                url,
                headers=headers,
                timeout=self.timeout_s,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            logger.error("Request failed (POST %s): %s", url, e)
            raise NetworkError(f"Request to {url} failed: {e}") from e

        if response.status_code != 201:
            detail = None
            if response.is_redirect:
                detail = f"redirect to {response.headers.get('Location')}"
            elif response.text:
                detail = response.text[:200]
            raise UnexpectedStatusError(response.status_code, detail)

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseDecodeError(f"License response is not valid JSON: {e}") from e

        return LicenseResponse.from_payload(data)


__all__ = [
    "NEW_LICENSE_PATH",
    "LicenseResponse",
    "OpendaxClient",
    "build_license_url",
]
