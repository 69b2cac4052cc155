"""
HashiCorp Vault access for portal secrets.

AppRole login, KV v2 reads scoped under 'portal/'. Each secret path is read
once per process and cached; a missing path, field or credential raises
VaultError so startup fails instead of running half-configured.
"""

import os
import logging
from typing import Dict

import hvac
from hvac.exceptions import InvalidPath, Unauthorized, Forbidden

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "portal"

# Singleton client and per-path secret cache
_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, Dict[str, str]] = {}


class VaultError(Exception):
    """Vault login or secret read failed. The portal cannot start without secrets."""


def _ensure_vault_client() -> "VaultClient":
    global _vault_client_instance
    if _vault_client_instance is None:
        _vault_client_instance = VaultClient()
    return _vault_client_instance


class VaultClient:
    """AppRole-authenticated reader for secrets under portal/."""

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_namespace: str | None = None,
    ):
        """Read VAULT_* settings from the environment and log in.

        Raises:
            ValueError: Address or AppRole credentials not configured.
            VaultError: AppRole login rejected.
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")
        role_id = os.getenv("VAULT_ROLE_ID")
        secret_id = os.getenv("VAULT_SECRET_ID")

        if not self.vault_addr:
            raise ValueError("VAULT_ADDR environment variable is required")
        if not role_id or not secret_id:
            raise ValueError(
                "VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required"
            )

        client_kwargs = {"url": self.vault_addr}
        if self.vault_namespace:
            client_kwargs["namespace"] = self.vault_namespace
        self.client = hvac.Client(**client_kwargs)

        self._login(role_id, secret_id)
        logger.info(f"Vault client ready: {self.vault_addr}")

    def _login(self, role_id: str, secret_id: str) -> None:
        try:
            auth_response = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except Exception as e:
            logger.error(f"AppRole authentication failed: {e}")
            raise VaultError(f"AppRole authentication failed: {e}") from e

        self.client.token = auth_response["auth"]["client_token"]
        if not self.client.is_authenticated():
            raise VaultError("Vault rejected the AppRole token")

    def read_secret(self, path: str) -> Dict[str, str]:
        """
        Read every field of portal/<path>.

        Raises:
            VaultError: Path missing or not readable with this role.
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath as e:
            logger.error(f"Secret path not found: {full_path}")
            raise VaultError(f"Secret path '{full_path}' not found in Vault") from e
        except (Unauthorized, Forbidden) as e:
            logger.error(f"Access denied to secret {full_path}: {e}")
            raise VaultError(f"Access denied to secret '{full_path}'") from e
        return response["data"]["data"]


def _pick(secret: Dict[str, str], path: str, fields: tuple[str, ...]) -> Dict[str, str]:
    missing = [field for field in fields if field not in secret]
    if missing:
        raise VaultError(
            f"Secret '{_SECRET_PREFIX}/{path}' is missing {', '.join(missing)}. "
            f"Available: {', '.join(sorted(secret))}"
        )
    return {field: secret[field] for field in fields}


def _get_cached(path: str, *fields: str) -> Dict[str, str]:
    if path not in _secret_cache:
        _secret_cache[path] = _ensure_vault_client().read_secret(path)
    return _pick(_secret_cache[path], path, fields)


def get_database_url() -> str:
    """PostgreSQL connection URL."""
    return _get_cached("database", "url")["url"]


def get_valkey_url() -> str:
    """Valkey connection URL."""
    return _get_cached("valkey", "url")["url"]


def get_jwt_secrets() -> Dict[str, str]:
    """Token signing secrets.

    Returns:
        Dict with keys: access_secret, refresh_secret
    """
    return _get_cached("jwt", "access_secret", "refresh_secret")


def get_email_config() -> Dict[str, str]:
    """Email gateway configuration.

    Returns:
        Dict with keys: gateway_url, api_key, hmac_secret
    """
    return _get_cached("email", "gateway_url", "api_key", "hmac_secret")
