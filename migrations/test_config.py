#!/usr/bin/env python3
"""
Tests for deployment settings and the deployer context
"""

import pytest
from unittest.mock import MagicMock, patch

from migrations.config import DeployerContext, Settings
from migrations.errors import DeploymentError

ENV_VARS = ["RPC_URL", "PRIVATE_KEY", "CHAIN_ID", "ARTIFACTS_DIR", "MANIFEST_DIR", "GAS_LIMIT", "TX_TIMEOUT"]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    with patch('migrations.config.load_dotenv') as mock_load:
        yield mock_load


class TestSettings:
    """Test class for Settings.from_env"""

    def test_defaults(self, clean_env, monkeypatch):
        """Test settings defaults when only PRIVATE_KEY is set"""
        monkeypatch.setenv("PRIVATE_KEY", "0x" + "01" * 32)
        settings = Settings.from_env()

        assert settings.rpc_url == "http://localhost:8545"
        assert settings.chain_id is None
        assert settings.artifacts_dir.endswith("contracts")
        assert settings.manifest_dir == ".openzeppelin"
        assert settings.gas_limit == 6_000_000
        assert settings.tx_timeout == 300
        clean_env.assert_called_once_with(None)

    def test_overrides(self, clean_env, monkeypatch):
        """Test environment overrides and an explicit .env file"""
        monkeypatch.setenv("PRIVATE_KEY", "0xkey")
        monkeypatch.setenv("RPC_URL", "https://rpc.example")
        monkeypatch.setenv("CHAIN_ID", "11155111")
        monkeypatch.setenv("GAS_LIMIT", "8000000")
        monkeypatch.setenv("ARTIFACTS_DIR", "artifacts")

        settings = Settings.from_env(".env.sepolia")

        assert settings.rpc_url == "https://rpc.example"
        assert settings.chain_id == 11155111
        assert settings.gas_limit == 8_000_000
        assert settings.artifacts_dir == "artifacts"
        clean_env.assert_called_once_with(".env.sepolia")

    def test_missing_private_key(self, clean_env):
        """Test that PRIVATE_KEY is required"""
        with pytest.raises(DeploymentError, match="PRIVATE_KEY"):
            Settings.from_env()

    def test_invalid_number(self, clean_env, monkeypatch):
        """Test that a non-numeric setting raises DeploymentError"""
        monkeypatch.setenv("PRIVATE_KEY", "0xkey")
        monkeypatch.setenv("TX_TIMEOUT", "soon")
        with pytest.raises(DeploymentError, match="Invalid numeric setting") as excinfo:
            Settings.from_env()
        assert isinstance(excinfo.value.__cause__, ValueError)


class TestDeployerContext:
    """Test class for DeployerContext.connect"""

    @patch('migrations.config.Web3')
    def test_connect(self, mock_web3, tmp_path):
        """Test connecting and loading the chain manifest"""
        w3 = mock_web3.return_value
        w3.is_connected.return_value = True
        w3.eth.chain_id = 1337
        account = MagicMock(address="0xDeployer")
        w3.eth.account.from_key.return_value = account

        settings = Settings(private_key="0xkey", artifacts_dir=str(tmp_path / "build"),
                            manifest_dir=str(tmp_path / ".openzeppelin"), gas_limit=1)
        deployer = DeployerContext.connect(settings)

        mock_web3.HTTPProvider.assert_called_once_with("http://localhost:8545")
        w3.middleware_onion.inject.assert_called_once()
        w3.eth.account.from_key.assert_called_once_with("0xkey")
        assert deployer.account is account
        assert deployer.manifest.chain_id == 1337
        assert deployer.artifacts.root == str(tmp_path / "build")
        assert deployer.gas_limit == 1

    @patch('migrations.config.Web3')
    def test_explicit_chain_id(self, mock_web3, tmp_path):
        """A CHAIN_ID matching the node selects that chain's manifest"""
        mock_web3.return_value.is_connected.return_value = True
        mock_web3.return_value.eth.chain_id = 5
        settings = Settings(private_key="0xkey", chain_id=5, manifest_dir=str(tmp_path))

        assert DeployerContext.connect(settings).manifest.chain_id == 5

    @patch('migrations.config.Web3')
    def test_chain_id_mismatch(self, mock_web3, tmp_path):
        """A CHAIN_ID different from the node's chain is rejected"""
        w3 = mock_web3.return_value
        w3.is_connected.return_value = True
        w3.eth.chain_id = 1
        settings = Settings(private_key="0xkey", chain_id=11155111, manifest_dir=str(tmp_path))

        with pytest.raises(DeploymentError, match="does not match"):
            DeployerContext.connect(settings)

        w3.eth.account.from_key.assert_not_called()
        assert not (tmp_path / "chain-11155111.json").exists()

    @patch('migrations.config.Web3')
    def test_unreachable_node(self, mock_web3):
        """Test behavior when the RPC node is down"""
        mock_web3.return_value.is_connected.return_value = False

        with pytest.raises(DeploymentError, match="Could not connect"):
            DeployerContext.connect(Settings(private_key="0xkey"))
