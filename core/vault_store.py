#!/usr/bin/env python3
"""HashiCorp Vault adapter for the `SecretStore` capability.

Secrets for one `(app, scope)` pair are kept as a single KV v2 document at

    <mount_point>/<deployment_id>/<app>/<scope>

`load_secrets` reads the document into a local working set, `get_secret` and
`set_secret` operate on that working set, and `save_secrets` writes the whole
document back. Nothing is written to Vault until `save_secrets` succeeds.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional, Tuple

import hvac
import requests
from hvac.exceptions import InvalidPath, VaultError

from core.errors import SecretStoreError


logger = logging.getLogger("license-daemon")


class VaultSecretStore:
    """KV v2 backed secret store."""

    def __init__(
        self,
        vault_addr: Optional[str] = None,
        vault_token: Optional[str] = None,
        deployment_id: str = "opendax_uat",
        mount_point: str = "secret",
        timeout_s: Optional[float] = None,
        client: Optional[hvac.Client] = None,
    ):
        """Initialize the adapter.

        Args:
            vault_addr: Vault server URL (ignored when `client` is given)
            vault_token: Vault token (ignored when `client` is given)
            deployment_id: Top-level path segment separating deployments
            mount_point: KV v2 secrets engine mount
            timeout_s: Vault HTTP timeout in seconds
            client: Pre-built `hvac.Client` (mainly for tests)
        """
        if client is None:
            kwargs: Dict[str, Any] = {"url": vault_addr, "token": vault_token}
            if timeout_s is not None:
                kwargs["timeout"] = timeout_s
            client = hvac.Client(**kwargs)
        self.client = client
        self.deployment_id = deployment_id
        self.mount_point = mount_point
        self._working: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def _path(self, app: str, scope: str) -> str:
        return f"{self.deployment_id}/{app}/{scope}"

    def _namespace(self, app: str, scope: str) -> Dict[str, Any]:
        try:
            return self._working[(app, scope)]
        except KeyError:
            raise SecretStoreError(f"Secrets for {app}.{scope} are not loaded") from None

    def load_secrets(self, app: str, scope: str) -> None:
        path = self._path(app, scope)
        try:
            resp = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.mount_point,
                raise_on_deleted_version=True,
            )
        except InvalidPath:
            logger.debug("Vault path %s/%s does not exist yet", self.mount_point, path)
            self._working[(app, scope)] = {}
            return
        except (VaultError, requests.RequestException) as e:
            raise SecretStoreError(f"Failed to load secrets {app}.{scope}: {e}") from e

        data = ((resp or {}).get("data") or {}).get("data")
        if not isinstance(data, dict):
            data = {}
        self._working[(app, scope)] = copy.deepcopy(data)

    def get_secret(self, app: str, key: str, scope: str) -> Optional[Any]:
        return self._namespace(app, scope).get(key)

    def set_secret(self, app: str, key: str, value: Any, scope: str) -> None:
        self._namespace(app, scope)[key] = value

    def save_secrets(self, app: str, scope: str) -> None:
        secrets = self._namespace(app, scope)
        try:
            self.client.secrets.kv.v2.create_or_update_secret(
                path=self._path(app, scope),
                secret=dict(secrets),
                mount_point=self.mount_point,
            )
        except (VaultError, requests.RequestException) as e:
            raise SecretStoreError(f"Failed to save secrets {app}.{scope}: {e}") from e


__all__ = ["VaultSecretStore"]
