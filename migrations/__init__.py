"""
ODON Migrations
===============

Deployment scripts for the ODON upgradeable contract.

Structure:
- artifacts: compiled contract lookup by name
- proxy: UUPS / transparent proxy deployment and upgrades
- manifest: per-chain record of deployed proxies
- initial_migration: the deployment trigger
- runner: command line entry point
"""

__version__ = "1.0.0"
__author__ = "ODON Team"
