#!/usr/bin/env python3
"""Run one Stripe deployment phase against a serverless.yml.

Resolved product, price and portal ids and webhook secrets are written to
the --output JSON file so the packaging step can inject them.

Usage:
    python scripts/stripe_deploy.py validate --config serverless.yml --stage dev
    python scripts/stripe_deploy.py deploy --config serverless.yml --stage dev \
        --output .stripe-env.json
    python scripts/stripe_deploy.py post-deploy --config serverless.yml --stage dev
    python scripts/stripe_deploy.py remove --config serverless.yml --stage dev
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

import stripe
from botocore.exceptions import BotoCoreError

from src.plugin.config import get_settings, load_service_definition
from src.plugin.handler import run_hook
from src.shared.environment import EnvironmentSink
from src.shared.errors import ConfigurationError, PluginError

logger = logging.getLogger(__name__)

# Their DEBUG output includes request bodies, SecureString values among them
QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "stripe")

PHASE_EVENTS = {
    "validate": "before:package:initialize",
    "deploy": "before:package:compileFunctions",
    "post-deploy": "after:deploy:deploy",
    "remove": "before:remove:remove",
}


def configure_logging(level: str | None = None) -> None:
    """Configure root logging; library loggers never go below WARNING."""
    logging.basicConfig(
        level=(level or os.environ.get("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    for name in QUIET_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.setLevel(max(library_logger.getEffectiveLevel(), logging.WARNING))


def write_environment(service, path: Path) -> None:
    """Write provider and function environments as JSON, owner-only from creation."""
    snapshot = EnvironmentSink(service).snapshot()
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    # O_CREAT mode does not apply to a file that already exists
    os.fchmod(fd, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(snapshot, f, indent=2, sort_keys=True)
    logger.info(f"Environment written to {path}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Reconcile Stripe webhooks, products and portals for a service"
    )
    parser.add_argument(
        "phase",
        choices=sorted(PHASE_EVENTS),
        help="Lifecycle phase to run",
    )
    parser.add_argument(
        "--config",
        default="serverless.yml",
        help="Path to serverless.yml (default: serverless.yml)",
    )
    parser.add_argument(
        "--stage",
        help="Deployment stage (default: provider.stage)",
    )
    parser.add_argument(
        "--region",
        help="AWS region (default: provider.region)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the resulting environment to this JSON file",
    )

    args = parser.parse_args(argv)
    configure_logging()

    try:
        settings = get_settings()
        service = load_service_definition(args.config, stage=args.stage, region=args.region)
        blocks = run_hook(PHASE_EVENTS[args.phase], service, settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        for violation in e.violations:
            logger.error(f"  {violation}")
        return 1
    except (PluginError, stripe.StripeError, BotoCoreError) as e:
        logger.error(f"Stripe {args.phase} failed: {type(e).__name__}: {e}")
        return 1

    if blocks:
        print("".join(blocks))

    if args.output and args.phase == "deploy":
        write_environment(service, args.output)

    logger.info(f"Stripe {args.phase} completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
