#!/usr/bin/env python3
"""Error taxonomy for the license-renewal pipeline.

Every failure inside one polling tick surfaces as a subclass of
`LicenseRenewalError`. The `kind` attribute is a stable short name used in
logs and in `TickResult.error_kind`.
"""

from __future__ import annotations

from typing import Optional


class LicenseRenewalError(RuntimeError):
    """Base class for all pipeline failures."""

    kind = "LicenseRenewalError"


class MalformedTokenError(LicenseRenewalError):
    kind = "MalformedToken"


class TokenDecodeError(LicenseRenewalError):
    kind = "DecodeError"


class MissingComponentError(LicenseRenewalError):
    kind = "MissingComponent"


class InvalidFieldError(LicenseRenewalError):
    kind = "InvalidField"


class SecretUnavailableError(LicenseRenewalError):
    kind = "SecretUnavailable"


class KeyDecodeError(LicenseRenewalError):
    kind = "KeyDecodeError"


class KeyParseError(LicenseRenewalError):
    kind = "KeyParseError"


class SigningError(LicenseRenewalError):
    kind = "SigningError"


class InvalidBaseURLError(LicenseRenewalError):
    kind = "InvalidBaseURL"


class NetworkError(LicenseRenewalError):
    kind = "NetworkError"


class UnexpectedStatusError(LicenseRenewalError):
    """Raised when the licensing endpoint answers with anything but 201."""

    kind = "UnexpectedStatus"

    def __init__(self, status_code: int, detail: Optional[str] = None):
        self.status_code = int(status_code)
        self.detail = detail
        msg = f"Unexpected status {self.status_code}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class ResponseDecodeError(LicenseRenewalError):
    kind = "ResponseDecodeError"


class SecretPersistError(LicenseRenewalError):
    kind = "SecretPersistError"


class SecretStoreError(RuntimeError):
    """Raised by secret store adapters when the backend fails."""


__all__ = [
    "LicenseRenewalError",
    "MalformedTokenError",
    "TokenDecodeError",
    "MissingComponentError",
    "InvalidFieldError",
    "SecretUnavailableError",
    "KeyDecodeError",
    "KeyParseError",
    "SigningError",
    "InvalidBaseURLError",
    "NetworkError",
    "UnexpectedStatusError",
    "ResponseDecodeError",
    "SecretPersistError",
    "SecretStoreError",
]
