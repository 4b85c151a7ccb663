"""Tests for core.vault_store -- hvac KV v2 adapter."""

from unittest import mock

import pytest
import requests
from hvac.exceptions import Forbidden, InvalidPath

from core.errors import SecretStoreError
from core.vault_store import VaultSecretStore


@pytest.fixture
def hvac_client():
    client = mock.Mock()
    client.secrets.kv.v2.read_secret_version.return_value = {
        "data": {"data": {"platform_id": "platform-123"}, "metadata": {"version": 3}}
    }
    return client


@pytest.fixture
def vault(hvac_client):
    return VaultSecretStore(deployment_id="opendax_uat", mount_point="secret", client=hvac_client)


class TestVaultSecretStore:
    def test_load_and_get(self, vault, hvac_client):
        vault.load_secrets("peatio", "private")

        assert vault.get_secret("peatio", "platform_id", "private") == "platform-123"
        hvac_client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="opendax_uat/peatio/private",
            mount_point="secret",
            raise_on_deleted_version=True,
        )

    def test_get_missing_key(self, vault):
        vault.load_secrets("peatio", "private")

        assert vault.get_secret("peatio", "nope", "private") is None

    def test_get_before_load(self, vault):
        with pytest.raises(SecretStoreError):
            vault.get_secret("peatio", "platform_id", "private")

    def test_missing_path_loads_empty(self, vault, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath()

        vault.load_secrets("finex", "secret")

        assert vault.get_secret("finex", "finex_license_key", "secret") is None

    @pytest.mark.parametrize(
        "exc",
        [Forbidden("permission denied"), requests.ConnectionError("refused")],
    )
    def test_load_failure(self, vault, hvac_client, exc):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = exc

        with pytest.raises(SecretStoreError):
            vault.load_secrets("peatio", "private")

    def test_set_then_save_writes_whole_document(self, vault, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"finex_license_key": "old", "other": "keep"}}
        }

        vault.load_secrets("finex", "secret")
        vault.set_secret("finex", "finex_license_key", "new", "secret")
        hvac_client.secrets.kv.v2.create_or_update_secret.assert_not_called()

        vault.save_secrets("finex", "secret")

        hvac_client.secrets.kv.v2.create_or_update_secret.assert_called_once_with(
            path="opendax_uat/finex/secret",
            secret={"finex_license_key": "new", "other": "keep"},
            mount_point="secret",
        )

    def test_save_failure(self, vault, hvac_client):
        hvac_client.secrets.kv.v2.create_or_update_secret.side_effect = Forbidden("denied")
        vault.load_secrets("finex", "secret")
        vault.set_secret("finex", "finex_license_key", "new", "secret")

        with pytest.raises(SecretStoreError):
            vault.save_secrets("finex", "secret")

    def test_reload_discards_unsaved_changes(self, vault):
        vault.load_secrets("peatio", "private")
        vault.set_secret("peatio", "platform_id", "changed", "private")
        vault.load_secrets("peatio", "private")

        assert vault.get_secret("peatio", "platform_id", "private") == "platform-123"

    def test_builds_hvac_client(self):
        with mock.patch("core.vault_store.hvac.Client") as client_cls:
            VaultSecretStore("http://vault:8200", "s.token", timeout_s=5)

        client_cls.assert_called_once_with(url="http://vault:8200", token="s.token", timeout=5)
