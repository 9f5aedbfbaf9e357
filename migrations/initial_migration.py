"""
Initial migration: deploy ODON behind a UUPS proxy
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .proxy import DeploymentConfig, ProxyKind, deploy_proxy, recorded_proxy_address, upgrade_proxy

logger = logging.getLogger(__name__)

CONTRACT_NAME = "ODON"
UPGRADE_CONTRACT_NAME = "ODON_V2"


@dataclass(frozen=True)
class DeployNew:
    contract_name: str = CONTRACT_NAME


@dataclass(frozen=True)
class UpgradeExisting:
    """Upgrade a deployed proxy; without proxy_address the manifest entry for ODON is used"""
    contract_name: str = UPGRADE_CONTRACT_NAME
    proxy_address: Optional[str] = None
    proxied_contract: str = CONTRACT_NAME


MigrationStep = Union[DeployNew, UpgradeExisting]


async def run_deploy(deployer, step: DeployNew) -> None:
    artifact = deployer.artifacts.require(step.contract_name)
    await deploy_proxy(artifact, DeploymentConfig(deployer=deployer, kind=ProxyKind.UUPS.value))


async def run_upgrade(deployer, step: UpgradeExisting) -> None:
    artifact = deployer.artifacts.require(step.contract_name)
    proxy_address = step.proxy_address or recorded_proxy_address(deployer, step.proxied_contract)
    await upgrade_proxy(proxy_address, artifact,
                        DeploymentConfig(deployer=deployer, kind=ProxyKind.UUPS.value))


async def run_step(deployer, step: MigrationStep) -> None:
    """Run exactly one of the deploy or upgrade steps"""
    if isinstance(step, DeployNew):
        await run_deploy(deployer, step)
    elif isinstance(step, UpgradeExisting):
        await run_upgrade(deployer, step)
    else:
        raise TypeError(f"Unknown migration step: {step!r}")


async def run_migration(deployer) -> None:
    """Deploy a new ODON UUPS proxy with the given deployer context"""
    await run_deploy(deployer, DeployNew())
