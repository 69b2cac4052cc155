"""Tests for VaultClient - HashiCorp Vault secrets management (hvac mocked)."""

from unittest.mock import MagicMock, patch

import pytest
from hvac.exceptions import Forbidden, InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import (
    VaultClient,
    VaultError,
    get_database_url,
    get_email_config,
    get_jwt_secrets,
)

SECRETS = {
    "portal/database": {"url": "postgresql://portal@db/portal"},
    "portal/valkey": {"url": "redis://cache:6379/0"},
    "portal/jwt": {"access_secret": "a" * 40, "refresh_secret": "r" * 40},
    "portal/email": {"gateway_url": "https://mail.example.com", "api_key": "k", "hmac_secret": "h"},
}


def read_secret_version(path, raise_on_deleted_version=True):
    if path not in SECRETS:
        raise InvalidPath()
    return {"data": {"data": SECRETS[path]}}


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.example.com")
    monkeypatch.setenv("VAULT_ROLE_ID", "role")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client(vault_env):
    with patch("clients.vault_client.hvac.Client") as client_class:
        instance = MagicMock()
        instance.auth.approle.login.return_value = {"auth": {"client_token": "tok"}}
        instance.is_authenticated.return_value = True
        instance.secrets.kv.v2.read_secret_version.side_effect = read_secret_version
        client_class.return_value = instance
        yield instance


@pytest.fixture(autouse=True)
def reset_singleton():
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()
    yield
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()


class TestVaultClientInit:
    """Initialization and authentication."""

    def test_missing_vault_addr_raises(self, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, monkeypatch):
        monkeypatch.setenv("VAULT_ADDR", "https://vault.example.com")
        monkeypatch.delenv("VAULT_ROLE_ID", raising=False)
        monkeypatch.delenv("VAULT_SECRET_ID", raising=False)
        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_invalid_approle_raises_vault_error(self, hvac_client):
        hvac_client.auth.approle.login.side_effect = Forbidden("bad role")
        with pytest.raises(VaultError, match="authentication"):
            VaultClient()

    def test_valid_approle_authenticates(self, hvac_client):
        client = VaultClient()
        assert client.client.token == "tok"


class TestReadSecret:
    """Secret retrieval - paths automatically scoped to portal/."""

    def test_returns_all_fields(self, hvac_client):
        assert VaultClient().read_secret("jwt") == {"access_secret": "a" * 40, "refresh_secret": "r" * 40}
        hvac_client.secrets.kv.v2.read_secret_version.assert_called_with(
            path="portal/jwt", raise_on_deleted_version=True
        )

    def test_missing_field_raises(self, hvac_client, monkeypatch):
        monkeypatch.setitem(SECRETS, "portal/valkey", {"host": "cache"})
        with pytest.raises(VaultError, match="missing url. Available: host"):
            vault_module.get_valkey_url()

    def test_missing_path_raises(self, hvac_client):
        with pytest.raises(VaultError, match="not found"):
            VaultClient().read_secret("stripe")

    def test_access_denied_raises(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = Forbidden("denied")
        with pytest.raises(VaultError, match="Access denied"):
            VaultClient().read_secret("database")


class TestConvenienceFunctions:

    def test_database_url_cached(self, hvac_client):
        assert get_database_url() == "postgresql://portal@db/portal"
        get_database_url()
        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1

    def test_jwt_secrets(self, hvac_client):
        assert get_jwt_secrets() == {"access_secret": "a" * 40, "refresh_secret": "r" * 40}

    def test_email_config(self, hvac_client):
        assert get_email_config() == {
            "gateway_url": "https://mail.example.com",
            "api_key": "k",
            "hmac_secret": "h",
        }

    def test_one_read_per_path(self, hvac_client):
        get_jwt_secrets()
        get_jwt_secrets()
        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1

    def test_unauthenticated_token_raises(self, hvac_client):
        hvac_client.is_authenticated.return_value = False
        with pytest.raises(VaultError, match="rejected"):
            get_database_url()
