"""Exceptions raised while deploying or upgrading ODON proxies."""


class DeploymentError(Exception):
    """A deployment step failed"""


class ArtifactNotFoundError(DeploymentError):
    """A contract name did not resolve to a usable compiled artifact"""

    def __init__(self, contract_name: str, reason: str = "not found"):
        self.contract_name = contract_name
        super().__init__(f"Artifact '{contract_name}': {reason}")


class InvalidProxyKindError(DeploymentError):
    """The proxy kind is unknown or the implementation does not support it"""


class TransactionFailedError(DeploymentError):
    """A transaction was mined with a failing status"""

    def __init__(self, tx_hash: str, description: str):
        self.tx_hash = tx_hash
        super().__init__(f"{description} failed (tx {tx_hash})")


class ManifestError(DeploymentError):
    """The deployment manifest is unreadable or lacks a requested entry"""
