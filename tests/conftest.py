"""
Pytest configuration and shared fixtures.
"""

import base64
import json

import pytest
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from core.opendax_client import OpendaxClient
from core.secret_store import (
    PLATFORM_ID_REF,
    SIGNING_KEY_REF,
    InMemorySecretStore,
    license_ref,
)


APP_NAME = "finex"
BASE_ADDR = "https://opendax.example.com"


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


@pytest.fixture(scope="session")
def rsa_key():
    """Throwaway 2048-bit RSA key shared by the whole session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def encoded_key(rsa_key):
    """The signing key as stored at rest: base64 of the PEM text."""
    pem = rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(pem).decode("ascii")


@pytest.fixture
def make_token():
    """Build a compact token whose payload is `payload` (dict or raw str)."""

    def _make(payload, header=None):
        header = header or {"alg": "RS256", "typ": "JWT"}
        if isinstance(payload, (dict, list)):
            body = _b64url(json.dumps(payload).encode("utf-8"))
        else:
            body = payload
        return ".".join([_b64url(json.dumps(header).encode("utf-8")), body, "c2lnbmF0dXJl"])

    return _make


@pytest.fixture
def make_response():
    """Build a real `requests.Response` with a JSON (or raw) body."""

    def _make(status_code, body=None, headers=None):
        resp = requests.Response()
        resp.status_code = status_code
        if body is None:
            resp._content = b""
        elif isinstance(body, bytes):
            resp._content = body
        else:
            resp._content = json.dumps(body).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
        resp.headers.update(headers or {})
        resp.url = BASE_ADDR
        return resp

    return _make


@pytest.fixture
def license_token(make_token):
    """License created at 0 and expiring at 1000."""
    return make_token({APP_NAME: {"creation": 0, "expire": 1000}})


@pytest.fixture
def store(encoded_key, license_token):
    """In-memory store pre-seeded with platform id, signing key and license."""
    return InMemorySecretStore.from_refs(
        {
            PLATFORM_ID_REF: "platform-123",
            SIGNING_KEY_REF: encoded_key,
            license_ref(APP_NAME): license_token,
        }
    )


@pytest.fixture
def client():
    return OpendaxClient(BASE_ADDR)
