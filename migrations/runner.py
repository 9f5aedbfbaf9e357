#!/usr/bin/env python3
"""
ODON migration runner
Builds the deployer context from the environment and runs one migration step
"""

import sys
import asyncio
import logging
import argparse
from typing import List, Optional

from .config import DeployerContext, Settings
from .errors import DeploymentError
from .initial_migration import (
    CONTRACT_NAME,
    UPGRADE_CONTRACT_NAME,
    DeployNew,
    MigrationStep,
    UpgradeExisting,
    run_step,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(log_file: Optional[str] = None, verbose: bool = False):
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="odon-migrate",
        description="Deploy ODON behind a UUPS proxy, or upgrade the deployed proxy",
    )
    parser.add_argument("--env-file", help=".env file to load before reading settings")
    parser.add_argument("--upgrade", action="store_true",
                        help="upgrade the existing proxy instead of deploying a new one")
    parser.add_argument("--proxy", help="proxy address to upgrade (default: latest ODON proxy in the manifest)")
    parser.add_argument("--contract", help="contract to deploy or upgrade to")
    parser.add_argument("--log-file", help="also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def step_from_args(args: argparse.Namespace) -> MigrationStep:
    if args.upgrade:
        return UpgradeExisting(contract_name=args.contract or UPGRADE_CONTRACT_NAME, proxy_address=args.proxy)
    if args.proxy:
        raise DeploymentError("--proxy only applies together with --upgrade")
    return DeployNew(contract_name=args.contract or CONTRACT_NAME)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the selected migration step; returns the process exit code"""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.verbose)

    try:
        step = step_from_args(args)
        settings = Settings.from_env(args.env_file)
        deployer = DeployerContext.connect(settings)
        logger.info(f"Running migration step: {step}")
        asyncio.run(run_step(deployer, step))
    except KeyboardInterrupt:
        logger.info("Migration interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Migration failed: {e}")
        return 1

    logger.info("Migration completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
