"""
Deployment configuration
Environment settings and the deployer context passed to migrations
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Optional

from dotenv import load_dotenv
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from .artifacts import ArtifactStore
from .errors import DeploymentError
from .manifest import Manifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Connection and deployment settings, normally read from the environment"""
    private_key: str
    rpc_url: str = "http://localhost:8545"
    chain_id: Optional[int] = None
    artifacts_dir: str = os.path.join("build", "contracts")
    manifest_dir: str = ".openzeppelin"
    gas_limit: int = 6_000_000
    tx_timeout: int = 300

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'Settings':
        """
        Build settings from environment variables

        Args:
            env_file: Optional .env file loaded before reading the environment

        Returns:
            Settings populated from RPC_URL, PRIVATE_KEY, CHAIN_ID, ARTIFACTS_DIR,
            MANIFEST_DIR, GAS_LIMIT and TX_TIMEOUT
        """
        load_dotenv(env_file)

        private_key = os.getenv("PRIVATE_KEY")
        if not private_key:
            raise DeploymentError("PRIVATE_KEY not found in environment")

        try:
            chain_id = os.getenv("CHAIN_ID")
            return cls(
                private_key=private_key,
                rpc_url=os.getenv("RPC_URL", cls.rpc_url),
                chain_id=int(chain_id) if chain_id else None,
                artifacts_dir=os.getenv("ARTIFACTS_DIR", cls.artifacts_dir),
                manifest_dir=os.getenv("MANIFEST_DIR", cls.manifest_dir),
                gas_limit=int(os.getenv("GAS_LIMIT", str(cls.gas_limit))),
                tx_timeout=int(os.getenv("TX_TIMEOUT", str(cls.tx_timeout))),
            )
        except ValueError as e:
            raise DeploymentError(f"Invalid numeric setting: {e}") from e


@dataclass
class DeployerContext:
    """Account, connection and collaborators a migration deploys with"""
    web3: Web3
    account: Any
    artifacts: ArtifactStore
    manifest: Manifest
    gas_limit: int = Settings.gas_limit
    tx_timeout: int = Settings.tx_timeout

    @classmethod
    def connect(cls, settings: Settings) -> 'DeployerContext':
        """Connect to the node in settings and load the chain's manifest"""
        w3 = Web3(Web3.HTTPProvider(settings.rpc_url))
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        if not w3.is_connected():
            raise DeploymentError(f"Could not connect to RPC URL: {settings.rpc_url}")
        logger.info(f"Connected to blockchain at {settings.rpc_url}")

        chain_id = w3.eth.chain_id
        if settings.chain_id is not None and settings.chain_id != chain_id:
            raise DeploymentError(
                f"CHAIN_ID {settings.chain_id} does not match the node at {settings.rpc_url} (chain {chain_id})"
            )
        account = w3.eth.account.from_key(settings.private_key)
        logger.info(f"Using deployer account: {account.address} (chain {chain_id})")

        return cls(
            web3=w3,
            account=account,
            artifacts=ArtifactStore(settings.artifacts_dir),
            manifest=Manifest(settings.manifest_dir, chain_id).load(),
            gas_limit=settings.gas_limit,
            tx_timeout=settings.tx_timeout,
        )
