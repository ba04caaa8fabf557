#!/usr/bin/env python3
"""Conduit CLI - move Finicity aggregation data into Ocrolus Books."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from conduit import credential_manager
from conduit.errors import ConfigError
from conduit.logger import get_logger, set_level
from conduit.models import DateRangeParams, InstitutionPolicy, RuntimeConfig
from conduit.paths import get_default_env_file
from conduit.pipeline import STAGES, Pipeline, PipelineResult

logger = get_logger()


def exit_with_config_error(message: str) -> int:
    """Log a configuration problem and return the failure exit code."""
    logger.error(message)
    logger.error("Set the missing values in your .env file or environment.")
    return 1


def _add_date_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--from-date",
        type=str,
        metavar="YYYY-MM-DD",
        help="Fetch transactions from this date (default: TXN_FROM_DATE or 90 days ago)"
    )
    parser.add_argument(
        "--to-date",
        type=str,
        metavar="YYYY-MM-DD",
        help="Fetch transactions up to this date (default: TXN_TO_DATE or now)"
    )
    parser.add_argument(
        "--limit",
        type=int,
        metavar="SIZE",
        help="Transactions per page (default: TXN_LIMIT or 20)"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Conduit - Fetch Finicity data and upload it to Ocrolus"
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Path to .env file (default: ./.env)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug output (overrides LOG_LEVEL)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch customer, accounts, transactions and institutions from Finicity")
    fetch_parser.add_argument("-o", "--output", type=Path, help="Output directory (default: OUTPUT_DIR or output/original)")
    _add_date_range(fetch_parser)

    transform_parser = subparsers.add_parser("transform", help="Fill fields Ocrolus requires into a separate tree")
    transform_parser.add_argument("--source", type=Path, help="Original tree (default: OUTPUT_DIR or output/original)")
    transform_parser.add_argument("--target", type=Path, help="Transformed tree (default: TRANSFORMED_DIR or output/transformed)")
    transform_parser.add_argument(
        "--institution-policy",
        choices=[p.value for p in InstitutionPolicy],
        help="How institutions are transformed (default: INSTITUTION_TRANSFORM_POLICY or passthrough)"
    )

    upload_parser = subparsers.add_parser("upload", help="Upload a data tree to an Ocrolus Book")
    upload_parser.add_argument("-i", "--input", type=Path, help="Tree to upload (default: TRANSFORMED_DIR or output/transformed)")
    upload_parser.add_argument("--book-pk", help="Ocrolus Book PK (default: OCROLUS_BOOK_PK)")

    status_parser = subparsers.add_parser("status", help="Show document errors for an Ocrolus Book")
    status_parser.add_argument("book_pk", nargs="?", help="Ocrolus Book PK (default: OCROLUS_BOOK_PK)")

    run_parser = subparsers.add_parser("run", help="Fetch, transform, upload and report errors")
    run_parser.add_argument("--book-pk", help="Ocrolus Book PK (default: OCROLUS_BOOK_PK)")
    _add_date_range(run_parser)

    credentials_parser = subparsers.add_parser("credentials", help="Manage credentials stored in the system keyring")
    actions = credentials_parser.add_subparsers(dest="action", required=True)
    actions.add_parser("show", help="Show which credentials are set (masked)")
    set_parser = actions.add_parser("set", help="Store a credential in the keyring")
    set_parser.add_argument("key", choices=credential_manager.CREDENTIAL_KEYS)
    set_parser.add_argument("--value", help="Credential value (prompted for when omitted)")
    delete_parser = actions.add_parser("delete", help="Remove a credential from the keyring")
    delete_parser.add_argument("key", choices=credential_manager.CREDENTIAL_KEYS)

    return parser


def load_config(args: argparse.Namespace) -> RuntimeConfig:
    """Load configuration with command line flags taking precedence."""
    overrides = {}

    if getattr(args, "from_date", None) or getattr(args, "to_date", None):
        dates = DateRangeParams(from_date=args.from_date, to_date=args.to_date)
        overrides["txn_from_date"] = dates.from_epoch
        overrides["txn_to_date"] = dates.to_epoch
    overrides["txn_limit"] = getattr(args, "limit", None)
    overrides["output_dir"] = getattr(args, "output", None) or getattr(args, "source", None)
    overrides["transformed_dir"] = getattr(args, "target", None)
    overrides["ocrolus_book_pk"] = getattr(args, "book_pk", None)

    config = RuntimeConfig.load(args.env_file, **overrides)

    policy = getattr(args, "institution_policy", None)
    if policy:
        config.transform.institution_policy = InstitutionPolicy(policy)

    for key in credential_manager.CREDENTIAL_KEYS:
        logger.debug(f"{key}: {credential_manager.mask_credential(getattr(config, key))}")
    return config


def cmd_credentials(args: argparse.Namespace) -> int:
    """Show, store or remove keyring credentials."""
    if args.action == "show":
        load_dotenv(args.env_file or get_default_env_file())
        logger.info("Conduit credentials (keyring first, then environment)")
        for key, value in credential_manager.get_all_credentials().items():
            logger.info(f"  {key.upper()}: {credential_manager.mask_credential(value)}")
        return 0

    if args.action == "set":
        value = args.value or input(f"{args.key.upper()}: ").strip()
        if not value:
            logger.error(f"No value given for {args.key.upper()}")
            return 1
        if not credential_manager.set_credential(args.key, value):
            return 1
        logger.info(f"Stored {args.key.upper()} in the system keyring")
        return 0

    if not credential_manager.delete_credential(args.key):
        return 1
    logger.info(f"Removed {args.key.upper()} from the system keyring")
    return 0


def run_stages(config: RuntimeConfig, stages: List[str], upload_root: Optional[Path] = None) -> PipelineResult:
    return Pipeline(config, upload_root=upload_root).run(stages)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.verbose:
        set_level("DEBUG")

    if args.command == "credentials":
        return cmd_credentials(args)

    try:
        config = load_config(args)
    except ValidationError as e:
        logger.error("Invalid parameters:")
        for error in e.errors():
            field = error['loc'][0] if error['loc'] else "dates"
            logger.error(f"  {field}: {error['msg']}")
        return 1
    except ConfigError as e:
        return exit_with_config_error(str(e))

    commands = {
        "fetch": lambda: run_stages(config, ["fetch"]),
        "transform": lambda: run_stages(config, ["transform"]),
        "upload": lambda: run_stages(config, ["upload"], upload_root=args.input),
        "status": lambda: run_stages(config, ["status"]),
        "run": lambda: run_stages(config, list(STAGES)),
    }
    result = commands[args.command]()
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
