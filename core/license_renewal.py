#!/usr/bin/env python3
"""License renewal exchange.

One renewal is:
1. read the platform id and the signing key from the secret store
2. sign an RS256 assertion with an empty claim set
3. POST to the licensing endpoint
4. write the returned license back to the secret store (load, set, save)

Each step fails with its own `LicenseRenewalError` subclass. Nothing is
written to the secret store unless the endpoint answered 201 with a valid
license document.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from core.errors import (
    InvalidFieldError,
    KeyDecodeError,
    KeyParseError,
    SecretPersistError,
    SecretStoreError,
    SecretUnavailableError,
    SigningError,
)
from core.opendax_client import LicenseResponse, OpendaxClient
from core.secret_store import (
    PLATFORM_ID_REF,
    SIGNING_KEY_REF,
    SecretRef,
    SecretStore,
    license_ref,
    read_secret,
    write_secret,
)


logger = logging.getLogger("license-daemon")

SIGNING_ALGORITHM = "RS256"


def fetch_string_secret(store: SecretStore, ref: SecretRef) -> str:
    """Read a string secret, mapping every failure to a named error."""

    try:
        value = read_secret(store, ref)
    except SecretStoreError as e:
        raise SecretUnavailableError(f"Secret {ref} could not be read: {e}") from e

    if value is None:
        raise SecretUnavailableError(f"Secret {ref} not found")
    if not isinstance(value, str):
        raise InvalidFieldError(f"Secret {ref} is not a string ({type(value).__name__})")
    return value


def load_signing_key(encoded: str) -> rsa.RSAPrivateKey:
    """Decode a base64-wrapped PEM RSA private key."""

    try:
        pem = base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyDecodeError(f"Signing key is not valid base64: {e}") from e

    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyParseError(f"Signing key is not a PEM private key: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyParseError(f"Signing key is not an RSA key ({type(key).__name__})")
    return key


def sign_assertion(key: Any) -> str:
    """Sign an RS256 JWT carrying no claims."""

    try:
        return jwt.encode({}, key, algorithm=SIGNING_ALGORITHM)
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        raise SigningError(f"Failed to sign assertion: {e}") from e


class LicenseRenewer:
    """Obtain a new license for `app_name` and store it."""

    def __init__(self, app_name: str, store: SecretStore, client: OpendaxClient):
        self.app_name = app_name
        self.store = store
        self.client = client

    @property
    def license_ref(self) -> SecretRef:
        return license_ref(self.app_name)

    def current_license(self) -> str:
        return fetch_string_secret(self.store, self.license_ref)

    def build_assertion(self) -> str:
        try:
            raw_key = fetch_string_secret(self.store, SIGNING_KEY_REF)
        except InvalidFieldError as e:
            raise KeyDecodeError(str(e)) from e
        return sign_assertion(load_signing_key(raw_key))

    def persist(self, license_token: str) -> None:
        try:
            write_secret(self.store, self.license_ref, license_token)
        except SecretStoreError as e:
            raise SecretPersistError(f"Failed to store license in {self.license_ref}: {e}") from e

    def renew(self) -> LicenseResponse:
        """Run one renewal exchange and persist the result.

        Raises:
            LicenseRenewalError: one of the named failure kinds; the stored
                license is left as it was.
        """

        platform_id = fetch_string_secret(self.store, PLATFORM_ID_REF)
        assertion = self.build_assertion()

        logger.info("Requesting new license for %s", self.app_name)
        response = self.client.request_new_license(platform_id, assertion)

        self.persist(response.license)
        logger.info("Stored new license for %s (expire=%s)", self.app_name, response.expire)
        return response


__all__ = [
    "SIGNING_ALGORITHM",
    "LicenseRenewer",
    "fetch_string_secret",
    "load_signing_key",
    "sign_assertion",
]
