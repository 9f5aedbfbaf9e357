"""
Deployment manifest
Per-chain JSON record of deployed proxies and implementations
"""

import os
import json
import logging
from typing import Any, Dict, List, Optional

from .errors import ManifestError

logger = logging.getLogger(__name__)


class Manifest:
    """Deployment bookkeeping for a single chain"""

    def __init__(self, directory: str, chain_id: int):
        self.directory = directory
        self.chain_id = chain_id
        self.path = os.path.join(directory, f'chain-{chain_id}.json')
        self.data: Dict[str, Any] = {'proxies': [], 'impls': {}}

    def load(self) -> 'Manifest':
        """Read the manifest file; a missing file leaves the manifest empty"""
        if not os.path.exists(self.path):
            return self
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ManifestError(f"Could not read manifest {self.path}: {e}")

        if not isinstance(data, dict):
            raise ManifestError(f"Manifest {self.path} is not a JSON object")
        self.data = {
            'proxies': list(data.get('proxies', [])),
            'impls': dict(data.get('impls', {})),
        }
        return self

    def save(self):
        os.makedirs(self.directory, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(self.data, f, indent=2)

    @property
    def proxies(self) -> List[Dict[str, Any]]:
        return self.data['proxies']

    def add_implementation(self, contract_name: str, address: str):
        impls = self.data['impls'].setdefault(contract_name, [])
        if address not in impls:
            impls.append(address)
        self.save()

    def add_proxy(self, contract_name: str, address: str, implementation: str,
                  kind: str, tx_hash: str):
        self.proxies.append({
            'contract': contract_name,
            'address': address,
            'implementation': implementation,
            'implementationContract': contract_name,
            'kind': kind,
            'txHash': tx_hash,
        })
        self.save()
        logger.info(f"Recorded {kind} proxy for {contract_name} at {address} in {self.path}")

    def update_implementation(self, proxy_address: str, contract_name: str, implementation: str,
                              kind: Optional[str] = None):
        """Point an existing proxy entry at its new implementation"""
        entry = self.find_proxy(proxy_address)
        if entry is None:
            # Upgraded a proxy deployed outside this manifest
            logger.warning(f"Proxy {proxy_address} is not in {self.path}; recording it now")
            self.proxies.append({
                'contract': contract_name,
                'address': proxy_address,
                'implementation': implementation,
                'implementationContract': contract_name,
                'kind': kind,
                'txHash': None,
            })
        else:
            entry['implementation'] = implementation
            entry['implementationContract'] = contract_name
        self.save()

    def find_proxy(self, address: str) -> Optional[Dict[str, Any]]:
        for entry in self.proxies:
            if entry['address'].lower() == address.lower():
                return entry
        return None

    def latest_proxy(self, contract_name: str) -> Dict[str, Any]:
        """Most recently recorded proxy for a contract"""
        for entry in reversed(self.proxies):
            if entry['contract'] == contract_name:
                return entry
        raise ManifestError(f"No proxy for {contract_name} recorded in {self.path}")
