"""
Compiled contract artifacts
Resolves a contract name to its ABI and creation bytecode
"""

import os
import glob
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import ArtifactNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractArtifact:
    """Compiled contract: name, ABI and creation bytecode"""
    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str

    def has_function(self, name: str) -> bool:
        return any(
            entry.get('type') == 'function' and entry.get('name') == name
            for entry in self.abi
        )


def _read_bytecode(data: Dict[str, Any]) -> str:
    bytecode = data.get('bytecode', '')
    # Foundry nests the hex under "object"
    if isinstance(bytecode, dict):
        bytecode = bytecode.get('object', '')
    if not isinstance(bytecode, str):
        return ''
    if bytecode and not bytecode.startswith('0x'):
        bytecode = '0x' + bytecode
    return bytecode


def load_artifact(file_path: str, contract_name: Optional[str] = None) -> ContractArtifact:
    """
    Load a contract artifact from its JSON file

    Args:
        file_path: Path to a Truffle, Hardhat or Foundry artifact
        contract_name: Name to report in errors (defaults to the file stem)

    Returns:
        The parsed ContractArtifact
    """
    name = contract_name or os.path.splitext(os.path.basename(file_path))[0]
    try:
        with open(file_path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ArtifactNotFoundError(name, f"no file at {file_path}")
    except (OSError, json.JSONDecodeError) as e:
        raise ArtifactNotFoundError(name, f"unreadable artifact {file_path}: {e}")

    if not isinstance(data, dict) or not isinstance(data.get('abi'), list):
        raise ArtifactNotFoundError(name, f"{file_path} has no ABI")

    bytecode = _read_bytecode(data)
    if bytecode in ('', '0x'):
        raise ArtifactNotFoundError(name, "artifact has no bytecode (abstract contract or interface?)")

    return ContractArtifact(
        contract_name=data.get('contractName', name),
        abi=data['abi'],
        bytecode=bytecode,
    )


class ArtifactStore:
    """Looks up compiled artifacts by contract name under a build directory"""

    def __init__(self, root: str):
        self.root = root
        self._cache: Dict[str, ContractArtifact] = {}

    def _candidate_paths(self, contract_name: str) -> List[str]:
        # Truffle: build/contracts/Name.json
        paths = [os.path.join(self.root, f'{contract_name}.json')]
        # Hardhat: artifacts/contracts/**/Name.sol/Name.json
        pattern = os.path.join(self.root, '**', f'{contract_name}.sol', f'{contract_name}.json')
        paths.extend(sorted(glob.glob(pattern, recursive=True)))
        return paths

    def require(self, contract_name: str) -> ContractArtifact:
        """Resolve a contract name to its artifact, raising if it does not exist"""
        if contract_name in self._cache:
            return self._cache[contract_name]

        for path in self._candidate_paths(contract_name):
            if os.path.isfile(path):
                artifact = load_artifact(path, contract_name)
                logger.debug(f"Resolved {contract_name} from {path}")
                self._cache[contract_name] = artifact
                return artifact

        raise ArtifactNotFoundError(contract_name, f"not found under {self.root}")
