"""Tests for core.secret_store -- in-memory store and load/save helpers."""

import pytest

from core.errors import SecretStoreError
from core.secret_store import (
    PLATFORM_ID_REF,
    SIGNING_KEY_REF,
    InMemorySecretStore,
    SecretRef,
    license_ref,
    read_secret,
    write_secret,
)


class TestSecretRefs:
    def test_well_known_refs(self):
        assert PLATFORM_ID_REF == SecretRef("peatio", "platform_id", "private")
        assert SIGNING_KEY_REF == SecretRef("sonic", "jwt_private_key", "secret")
        assert license_ref("finex") == SecretRef("finex", "finex_license_key", "secret")

    def test_str(self):
        assert str(PLATFORM_ID_REF) == "peatio.private.platform_id"


class TestInMemorySecretStore:
    def test_get_requires_load(self):
        store = InMemorySecretStore({("peatio", "private"): {"platform_id": "p"}})

        with pytest.raises(SecretStoreError):
            store.get_secret("peatio", "platform_id", "private")

    def test_set_requires_load(self):
        store = InMemorySecretStore()

        with pytest.raises(SecretStoreError):
            store.set_secret("finex", "k", "v", "secret")

    def test_missing_key_returns_none(self):
        store = InMemorySecretStore()
        store.load_secrets("finex", "secret")

        assert store.get_secret("finex", "nope", "secret") is None

    def test_set_is_not_committed_until_save(self):
        store = InMemorySecretStore()
        ref = license_ref("finex")

        store.load_secrets(ref.app, ref.scope)
        store.set_secret(ref.app, ref.key, "new", ref.scope)
        assert store.committed_value(ref) is None

        store.save_secrets(ref.app, ref.scope)
        assert store.committed_value(ref) == "new"

    def test_load_discards_unsaved_changes(self):
        ref = license_ref("finex")
        store = InMemorySecretStore.from_refs({ref: "old"})

        store.load_secrets(ref.app, ref.scope)
        store.set_secret(ref.app, ref.key, "new", ref.scope)
        store.load_secrets(ref.app, ref.scope)

        assert store.get_secret(ref.app, ref.key, ref.scope) == "old"

    def test_from_refs_groups_namespaces(self):
        store = InMemorySecretStore.from_refs(
            {
                SecretRef("sonic", "a", "secret"): 1,
                SecretRef("sonic", "b", "secret"): 2,
                SecretRef("sonic", "c", "public"): 3,
            }
        )

        assert store.committed == {
            ("sonic", "secret"): {"a": 1, "b": 2},
            ("sonic", "public"): {"c": 3},
        }


class TestHelpers:
    def test_read_secret_loads_first(self):
        store = InMemorySecretStore.from_refs({PLATFORM_ID_REF: "p-1"})

        assert read_secret(store, PLATFORM_ID_REF) == "p-1"
        assert store.calls == [
            ("load", "peatio", "private"),
            ("get", "peatio", "platform_id", "private"),
        ]

    def test_write_secret_load_set_save(self):
        store = InMemorySecretStore()
        ref = license_ref("finex")

        write_secret(store, ref, "tok")

        assert store.calls == [
            ("load", "finex", "secret"),
            ("set", "finex", "finex_license_key", "tok", "secret"),
            ("save", "finex", "secret"),
        ]
        assert store.committed_value(ref) == "tok"

    def test_write_secret_keeps_other_keys(self):
        ref = license_ref("finex")
        other = SecretRef("finex", "other", "secret")
        store = InMemorySecretStore.from_refs({ref: "old", other: "keep"})

        write_secret(store, ref, "new")

        assert store.committed_value(other) == "keep"
        assert store.committed_value(ref) == "new"
