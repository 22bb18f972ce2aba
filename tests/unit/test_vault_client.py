"""
Unit tests for utils/vault_client.py

Covers client initialization, KV v2 secret retrieval, Base credential
fetching, and health checks.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from utils.vault_client import DEFAULT_SECRET_PATH, VaultClient


def _vault_response(status_code=200, data=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = {"data": {"data": data or {}}}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return response


class TestVaultClientInit:
    """Test VaultClient initialization scenarios"""

    def test_init_with_explicit_parameters(self):
        """Test initialization with explicitly provided parameters"""
        # Arrange & Act
        client = VaultClient(
            vault_addr="https://vault.example.com/",
            vault_token="test-token-123"
        )

        # Assert
        assert client.vault_addr == "https://vault.example.com"
        assert client.namespace is None
        assert client.headers == {
            "X-Vault-Token": "test-token-123",
            "Content-Type": "application/json"
        }

    def test_init_with_env_variables(self, monkeypatch):
        """Test initialization using environment variables"""
        # Arrange
        monkeypatch.setenv("VAULT_ADDR", "https://vault.env.com")
        monkeypatch.setenv("VAULT_TOKEN", "env-token-456")

        # Act
        client = VaultClient()

        # Assert
        assert client.vault_addr == "https://vault.env.com"
        assert client.vault_token == "env-token-456"

    def test_init_missing_vault_addr_raises_error(self, monkeypatch):
        """Test that missing vault_addr raises ValueError"""
        monkeypatch.delenv("VAULT_ADDR", raising=False)

        with pytest.raises(ValueError, match="Vault address not provided"):
            VaultClient(vault_token="token")

    def test_init_missing_vault_token_raises_error(self, monkeypatch):
        """Test that missing vault_token raises ValueError"""
        monkeypatch.delenv("VAULT_TOKEN", raising=False)

        with pytest.raises(ValueError, match="Vault token not provided"):
            VaultClient(vault_addr="https://vault.example.com")

    def test_init_with_namespace(self):
        """Test namespace header is added for Vault Enterprise"""
        client = VaultClient(
            vault_addr="https://vault.example.com",
            vault_token="token",
            namespace="team-a"
        )

        assert client.headers["X-Vault-Namespace"] == "team-a"


class TestVaultClientGetSecret:
    """Test get_secret"""

    def setup_method(self):
        self.client = VaultClient(vault_addr="https://vault.example.com", vault_token="token")

    @patch("utils.vault_client.requests.get")
    def test_get_secret_inserts_kv2_data_segment(self, mock_get):
        """Test KV v2 paths are rewritten to <mount>/data/<path>"""
        # Arrange
        mock_get.return_value = _vault_response(data={"key": "value"})

        # Act
        result = self.client.get_secret("secret/lark/base")

        # Assert
        assert result == {"key": "value"}
        mock_get.assert_called_once_with(
            "https://vault.example.com/v1/secret/data/lark/base",
            headers=self.client.headers,
            timeout=10.0,
        )

    @patch("utils.vault_client.requests.get")
    def test_get_secret_keeps_explicit_data_path(self, mock_get):
        mock_get.return_value = _vault_response(data={"key": "value"})

        self.client.get_secret("secret/data/lark/base")

        assert mock_get.call_args[0][0] == "https://vault.example.com/v1/secret/data/lark/base"

    @pytest.mark.parametrize("path", ["", "secret/../sys", "//secret", "secret/lark base", "secret/$x"])
    def test_get_secret_rejects_unsafe_paths(self, path):
        with pytest.raises(ValueError):
            self.client.get_secret(path)

    @patch("utils.vault_client.requests.get")
    def test_get_secret_not_found(self, mock_get):
        mock_get.return_value = _vault_response(status_code=404)

        with pytest.raises(ValueError, match="Secret not found"):
            self.client.get_secret("secret/lark/base")

    @patch("utils.vault_client.requests.get")
    def test_get_secret_http_error_propagates(self, mock_get):
        mock_get.return_value = _vault_response(status_code=500)

        with pytest.raises(requests.HTTPError):
            self.client.get_secret("secret/lark/base")

    @patch("utils.vault_client.requests.get")
    def test_get_secret_empty_data(self, mock_get):
        mock_get.return_value = _vault_response(data={})

        with pytest.raises(ValueError, match="No data found"):
            self.client.get_secret("secret/lark/base")


class TestVaultClientBaseCredentials:
    """Test get_base_credentials"""

    def setup_method(self):
        self.client = VaultClient(vault_addr="https://vault.example.com", vault_token="token")

    @patch("utils.vault_client.requests.get")
    def test_returns_base_credentials(self, mock_get):
        mock_get.return_value = _vault_response(data={
            "base_id": "bascnTEST",
            "personal_token": "pt-secret",
            "note": "ignored",
        })

        credentials = self.client.get_base_credentials()

        assert credentials == {"base_id": "bascnTEST", "personal_token": "pt-secret"}
        assert "lark/base" in mock_get.call_args[0][0]
        assert DEFAULT_SECRET_PATH == "secret/lark/base"

    @patch("utils.vault_client.requests.get")
    def test_missing_token_field(self, mock_get):
        mock_get.return_value = _vault_response(data={"base_id": "bascnTEST"})

        with pytest.raises(ValueError, match="personal_token"):
            self.client.get_base_credentials()


class TestVaultClientHealthCheck:
    """Test health_check"""

    def setup_method(self):
        self.client = VaultClient(vault_addr="https://vault.example.com", vault_token="token")

    @pytest.mark.parametrize("status,healthy", [(200, True), (429, True), (501, False), (503, False)])
    @patch("utils.vault_client.requests.get")
    def test_health_by_status(self, mock_get, status, healthy):
        mock_get.return_value = Mock(status_code=status)

        assert self.client.health_check() is healthy

    @patch("utils.vault_client.requests.get")
    def test_health_check_connection_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")

        assert self.client.health_check() is False
