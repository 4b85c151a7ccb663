#!/usr/bin/env python3
"""Secret store capability.

The daemon never talks to a concrete vault directly; it is handed an object
implementing `SecretStore`. Secrets live under an `(app, scope)` namespace
and follow a load -> get/set -> save discipline: a namespace must be loaded
into the store's working set before it is read or mutated, and `set_secret`
only becomes durable once `save_secrets` succeeds.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from core.errors import SecretStoreError


@dataclass(frozen=True)
class SecretRef:
    """Location of one secret: (app namespace, key, scope)."""

    app: str
    key: str
    scope: str

    def __str__(self) -> str:
        return f"{self.app}.{self.scope}.{self.key}"


PLATFORM_ID_REF = SecretRef("peatio", "platform_id", "private")
SIGNING_KEY_REF = SecretRef("sonic", "jwt_private_key", "secret")

LICENSE_SECRET_KEY = "finex_license_key"
LICENSE_SECRET_SCOPE = "secret"


def license_ref(app_name: str) -> SecretRef:
    return SecretRef(app_name, LICENSE_SECRET_KEY, LICENSE_SECRET_SCOPE)


class SecretStore(Protocol):
    def load_secrets(self, app: str, scope: str) -> None:
        ...

    def get_secret(self, app: str, key: str, scope: str) -> Optional[Any]:
        """Return the value, or None when the key does not exist."""
        ...

    def set_secret(self, app: str, key: str, value: Any, scope: str) -> None:
        ...

    def save_secrets(self, app: str, scope: str) -> None:
        ...


def read_secret(store: SecretStore, ref: SecretRef) -> Optional[Any]:
    """Load the namespace of `ref` and return its value (None if absent)."""

    store.load_secrets(ref.app, ref.scope)
    return store.get_secret(ref.app, ref.key, ref.scope)


def write_secret(store: SecretStore, ref: SecretRef, value: Any) -> None:
    """Load, set and save `ref` as one unit.

    If any step raises, the value must be treated as not committed.
    """

    store.load_secrets(ref.app, ref.scope)
    store.set_secret(ref.app, ref.key, value, ref.scope)
    store.save_secrets(ref.app, ref.scope)


class InMemorySecretStore:
    """Dict-backed store with the same load/save semantics as a vault.

    `committed` holds durable state per namespace. `load_secrets` copies a
    namespace into the working set, discarding unsaved changes, and
    `save_secrets` copies it back. Every call is appended to `calls`.
    """

    def __init__(self, secrets: Optional[Dict[Tuple[str, str], Dict[str, Any]]] = None):
        self.committed: Dict[Tuple[str, str], Dict[str, Any]] = copy.deepcopy(secrets or {})
        self._working: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[Tuple[Any, ...]] = []

    @classmethod
    def from_refs(cls, values: Dict[SecretRef, Any]) -> "InMemorySecretStore":
        secrets: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for ref, value in values.items():
            secrets.setdefault((ref.app, ref.scope), {})[ref.key] = value
        return cls(secrets)

    def _namespace(self, app: str, scope: str) -> Dict[str, Any]:
        try:
            return self._working[(app, scope)]
        except KeyError:
            raise SecretStoreError(f"Secrets for {app}.{scope} are not loaded") from None

    def load_secrets(self, app: str, scope: str) -> None:
        self.calls.append(("load", app, scope))
        self._working[(app, scope)] = copy.deepcopy(self.committed.get((app, scope), {}))

    def get_secret(self, app: str, key: str, scope: str) -> Optional[Any]:
        self.calls.append(("get", app, key, scope))
        return self._namespace(app, scope).get(key)

    def set_secret(self, app: str, key: str, value: Any, scope: str) -> None:
        self.calls.append(("set", app, key, value, scope))
        self._namespace(app, scope)[key] = value

    def save_secrets(self, app: str, scope: str) -> None:
        self.calls.append(("save", app, scope))
        self.committed[(app, scope)] = copy.deepcopy(self._namespace(app, scope))

    def committed_value(self, ref: SecretRef) -> Optional[Any]:
        return self.committed.get((ref.app, ref.scope), {}).get(ref.key)

    def writes(self) -> List[Tuple[Any, ...]]:
        return [c for c in self.calls if c[0] in {"set", "save"}]


__all__ = [
    "SecretRef",
    "SecretStore",
    "PLATFORM_ID_REF",
    "SIGNING_KEY_REF",
    "LICENSE_SECRET_KEY",
    "LICENSE_SECRET_SCOPE",
    "license_ref",
    "read_secret",
    "write_secret",
    "InMemorySecretStore",
]
