#!/usr/bin/env python3
"""
Upgradeable proxy deployment
Deploys an implementation behind an ERC-1967 proxy (UUPS or transparent)
and upgrades existing proxies to new implementations
"""

import asyncio
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union

from web3 import Web3

from .artifacts import ContractArtifact
from .errors import InvalidProxyKindError, ManifestError, TransactionFailedError

logger = logging.getLogger(__name__)

DEFAULT_INITIALIZER = 'initialize'

# bytes32(uint256(keccak256('eip1967.proxy.admin')) - 1)
ADMIN_SLOT = 0xb53127684a568b3173ae13b9f8a6016e243e63b6e8ee1178d6a717850b5d6103

UUPS_PROXY_CONTRACT = 'ERC1967Proxy'
TRANSPARENT_PROXY_CONTRACT = 'TransparentUpgradeableProxy'
PROXY_ADMIN_CONTRACT = 'ProxyAdmin'


class ProxyKind(str, Enum):
    UUPS = 'uups'
    TRANSPARENT = 'transparent'

    @classmethod
    def parse(cls, value: Union[str, 'ProxyKind']) -> 'ProxyKind':
        try:
            return cls(value)
        except ValueError:
            supported = ', '.join(kind.value for kind in cls)
            raise InvalidProxyKindError(f"Unsupported proxy kind '{value}' (expected one of: {supported})")


@dataclass(frozen=True)
class DeploymentConfig:
    """
    Options for a proxy deployment or upgrade

    Args:
        deployer: DeployerContext that signs and sends the transactions
        kind: Proxy strategy, "uups" or "transparent"
        initializer: Initializer to call through the proxy. None calls
            "initialize" when the ABI has it, False skips the call, and a
            name must exist in the ABI.
        initializer_args: Arguments for the initializer
    """
    deployer: Any
    kind: str = ProxyKind.UUPS.value
    initializer: Union[str, bool, None] = None
    initializer_args: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class DeployedProxy:
    """Handle to a deployed (or upgraded) proxy"""
    contract_name: str
    address: str
    implementation: str
    kind: str
    tx_hash: str


def _tx_params(deployer) -> dict:
    w3 = deployer.web3
    address = deployer.account.address
    return {
        'from': address,
        'nonce': w3.eth.get_transaction_count(address),
        'gas': deployer.gas_limit,
        'gasPrice': w3.eth.gas_price,
    }


def _send(deployer, tx: dict, description: str):
    """Sign, send and wait for a transaction; raises unless it succeeded"""
    w3 = deployer.web3
    signed_tx = deployer.account.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed_tx.raw_transaction)
    tx_hex = Web3.to_hex(tx_hash)
    logger.info(f"{description} transaction sent: {tx_hex}")

    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=deployer.tx_timeout)
    if receipt['status'] != 1:
        raise TransactionFailedError(tx_hex, description)

    logger.info(f"{description} confirmed in block {receipt['blockNumber']}")
    return receipt


def _deploy_contract(deployer, artifact: ContractArtifact, *args) -> Tuple[str, str]:
    w3 = deployer.web3
    factory = w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
    tx = factory.constructor(*args).build_transaction(_tx_params(deployer))
    receipt = _send(deployer, tx, f"Deploy {artifact.contract_name}")
    return receipt['contractAddress'], Web3.to_hex(receipt['transactionHash'])


def _deploy_implementation(deployer, artifact: ContractArtifact) -> str:
    address, _ = _deploy_contract(deployer, artifact)
    deployer.manifest.add_implementation(artifact.contract_name, address)
    logger.info(f"{artifact.contract_name} implementation deployed at {address}")
    return address


def _check_upgradeable(artifact: ContractArtifact, kind: ProxyKind):
    if kind is ProxyKind.UUPS and not (
        artifact.has_function('upgradeToAndCall') or artifact.has_function('upgradeTo')
    ):
        raise InvalidProxyKindError(
            f"{artifact.contract_name} cannot be deployed as a uups proxy: "
            "missing public upgradeToAndCall/upgradeTo function"
        )


def encode_initializer(w3: Web3, artifact: ContractArtifact, initializer: Union[str, bool, None],
                       args: Sequence[Any]) -> bytes:
    """Calldata for the initializer call made from the proxy constructor"""
    if initializer is False:
        return b''
    name = DEFAULT_INITIALIZER if initializer in (None, True) else initializer
    if not artifact.has_function(name):
        if initializer in (None, True) and not args:
            return b''
        raise InvalidProxyKindError(f"{artifact.contract_name} has no initializer '{name}'")

    contract = w3.eth.contract(abi=artifact.abi)
    return Web3.to_bytes(hexstr=contract.encode_abi(name, args=list(args)))


def _read_admin(w3: Web3, proxy_address: str) -> str:
    raw = w3.eth.get_storage_at(proxy_address, ADMIN_SLOT)
    return Web3.to_checksum_address(bytes(raw)[-20:])


def deploy_proxy_sync(artifact: ContractArtifact, config: DeploymentConfig) -> DeployedProxy:
    """Blocking variant of deploy_proxy"""
    kind = ProxyKind.parse(config.kind)
    _check_upgradeable(artifact, kind)
    deployer = config.deployer
    w3 = deployer.web3

    logger.info(f"Deploying {artifact.contract_name} behind a {kind.value} proxy...")
    if kind is ProxyKind.UUPS:
        proxy_artifact = deployer.artifacts.require(UUPS_PROXY_CONTRACT)
    else:
        proxy_artifact = deployer.artifacts.require(TRANSPARENT_PROXY_CONTRACT)
    data = encode_initializer(w3, artifact, config.initializer, config.initializer_args)
    implementation = _deploy_implementation(deployer, artifact)

    if kind is ProxyKind.UUPS:
        address, tx_hash = _deploy_contract(deployer, proxy_artifact, implementation, data)
    else:
        address, tx_hash = _deploy_contract(
            deployer, proxy_artifact, implementation, deployer.account.address, data
        )

    deployer.manifest.add_proxy(artifact.contract_name, address, implementation, kind.value, tx_hash)
    logger.info(f"{artifact.contract_name} proxy deployed at {address}")
    return DeployedProxy(
        contract_name=artifact.contract_name,
        address=address,
        implementation=implementation,
        kind=kind.value,
        tx_hash=tx_hash,
    )


def upgrade_proxy_sync(proxy_address: str, artifact: ContractArtifact,
                       config: DeploymentConfig) -> DeployedProxy:
    """Blocking variant of upgrade_proxy"""
    kind = ProxyKind.parse(config.kind)
    deployer = config.deployer
    w3 = deployer.web3
    proxy_address = Web3.to_checksum_address(proxy_address)

    recorded = deployer.manifest.find_proxy(proxy_address)
    if recorded is not None and recorded.get('kind') not in (None, kind.value):
        raise InvalidProxyKindError(
            f"Proxy {proxy_address} was deployed as {recorded['kind']}, not {kind.value}"
        )
    _check_upgradeable(artifact, kind)
    admin_artifact = None
    if kind is ProxyKind.TRANSPARENT:
        admin_artifact = deployer.artifacts.require(PROXY_ADMIN_CONTRACT)

    logger.info(f"Upgrading {kind.value} proxy {proxy_address} to {artifact.contract_name}...")
    implementation = _deploy_implementation(deployer, artifact)

    if kind is ProxyKind.UUPS:
        proxy = w3.eth.contract(address=proxy_address, abi=artifact.abi)
        if artifact.has_function('upgradeToAndCall'):
            call = proxy.functions.upgradeToAndCall(implementation, b'')
        else:
            call = proxy.functions.upgradeTo(implementation)
    else:
        admin = w3.eth.contract(address=_read_admin(w3, proxy_address), abi=admin_artifact.abi)
        call = admin.functions.upgradeAndCall(proxy_address, implementation, b'')

    receipt = _send(deployer, call.build_transaction(_tx_params(deployer)),
                    f"Upgrade {proxy_address}")
    deployer.manifest.update_implementation(proxy_address, artifact.contract_name,
                                            implementation, kind.value)
    return DeployedProxy(
        contract_name=artifact.contract_name,
        address=proxy_address,
        implementation=implementation,
        kind=kind.value,
        tx_hash=Web3.to_hex(receipt['transactionHash']),
    )


async def deploy_proxy(artifact: ContractArtifact, config: DeploymentConfig) -> DeployedProxy:
    """Deploy artifact as an upgradeable proxy; resolves once the proxy is mined"""
    return await asyncio.to_thread(deploy_proxy_sync, artifact, config)


async def upgrade_proxy(proxy_address: str, artifact: ContractArtifact,
                        config: DeploymentConfig) -> DeployedProxy:
    """Point an existing proxy at a freshly deployed implementation of artifact"""
    return await asyncio.to_thread(upgrade_proxy_sync, proxy_address, artifact, config)


def recorded_proxy_address(deployer, contract_name: str) -> str:
    """Address of the latest proxy recorded for contract_name on the deployer's chain"""
    entry = deployer.manifest.latest_proxy(contract_name)
    address: Optional[str] = entry.get('address')
    if not address:
        raise ManifestError(f"Proxy entry for {contract_name} has no address")
    return address
