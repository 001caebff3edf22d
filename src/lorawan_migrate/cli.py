#!/usr/bin/env python3
"""LoRaWAN Migration CLI.

Migrates applications, devices, outputs, networks and gateways from a
ChirpStack v4 server (gRPC) or a Kerlink WMC CSV export into a LORIOT
network server.

Source Selection:
    - CHIRPSTACK_URL set: ChirpStack over gRPC (CHIRPSTACK_API_TOKEN and
      CHIRPSTACK_TENANT_ID required)
    - otherwise: Kerlink CSV files from KERLINK_DATA_DIR (default ./data)

Environment Variables Required:
    - URL: Destination host (e.g. eu1.loriot.io)
    - AUTH: Authorization header value (e.g. "Bearer ...")

Example Usage:
    $ lorawan-migrate                             # Import from the configured source
    $ lorawan-migrate --clean                     # Clean matching resources, then import
    $ lorawan-migrate --clean --no-import         # Only clean
    $ lorawan-migrate --data-dir ./export --customer-id 42
    $ lorawan-migrate --concurrency 4             # Four applications/networks at once

Author: LoRaWAN Migration Team
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .api.exceptions import ConfigurationError
from .config import Settings, load_settings
from .orchestrator import MigrationReport, run_migration

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lorawan-migrate",
        description="Migrate LoRaWAN resources from ChirpStack or Kerlink to LORIOT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lorawan-migrate                         # Import from the configured source
  lorawan-migrate --clean                 # Clean matching resources, then import
  lorawan-migrate --clean --no-import     # Only clean
  lorawan-migrate --data-dir ./export     # Kerlink export directory
        """
    )

    phase_group = parser.add_argument_group("Phases")
    phase_group.add_argument(
        "--clean",
        action="store_true",
        default=None,
        help="Delete destination devices/gateways about to be re-imported (env CLEAN)"
    )
    phase_group.add_argument(
        "--no-import",
        action="store_true",
        help="Skip the import phase (env IMPORT=false)"
    )

    source_group = parser.add_argument_group("Kerlink Source")
    source_group.add_argument(
        "--data-dir",
        type=Path,
        metavar="DIR",
        help="Directory holding the CSV export (env KERLINK_DATA_DIR)"
    )
    source_group.add_argument(
        "--customer-id",
        type=int,
        metavar="ID",
        help="Only migrate fleets of this customer (env CUSTOMERID)"
    )

    run_group = parser.add_argument_group("Run Options")
    run_group.add_argument(
        "--concurrency",
        type=int,
        metavar="N",
        help="Applications/networks processed at once (env MIGRATION_MAX_CONCURRENCY)"
    )
    run_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (env LOG_LEVEL)"
    )

    return parser


def apply_arguments(settings: Settings, args: argparse.Namespace) -> Settings:
    """Override environment settings with the flags given on the command line."""
    if args.concurrency is not None and args.concurrency < 1:
        raise ConfigurationError("--concurrency must be >= 1", missing_keys=["--concurrency"])
    return settings.with_overrides(
        clean=args.clean,
        import_resources=False if args.no_import else None,
        data_dir=args.data_dir,
        customer_id=args.customer_id,
        max_concurrency=args.concurrency,
        log_level=args.log_level,
    )


def print_report(report: MigrationReport) -> None:
    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE" if report.success else "MIGRATION COMPLETE WITH ERRORS")
    print("=" * 60)
    for line in report.summary_lines():
        print(line)


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        settings = apply_arguments(load_settings(), args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    try:
        report = asyncio.run(run_migration(settings))
    except Exception:
        logger.exception("Migration aborted")
        return 1

    print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
