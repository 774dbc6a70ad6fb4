#!/usr/bin/env python3

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from playwright.async_api import Error as PlaywrightError
from pydantic import ValidationError

from portal_flows import FlowFileError, default_plan, describe_plan, load_plan
from run_reporter import RunReporter
from shot_models import Credential, FatalRunError, Role, RunConfig
from shot_runner import run_flows


CREDENTIAL_ENV = {
    Role.CONSUMER: ("CONSUMER_PHONE", "CONSUMER_PIN"),
    Role.RETAILER: ("RETAILER_EMAIL", "RETAILER_PASSWORD"),
}


def credentials_from_env(environ=None) -> dict:
    """Build credentials for every role whose identifier and secret are both set."""
    environ = os.environ if environ is None else environ
    creds = {}
    for role, (ident_key, secret_key) in CREDENTIAL_ENV.items():
        ident = environ.get(ident_key)
        secret = environ.get(secret_key)
        if ident and secret:
            creds[role] = Credential(role=role, identifier=ident, secret=secret)
    return creds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Portal flows → screenshots")
    parser.add_argument("--base-url", default=None, help="Base URL of the deployment (or PORTAL_BASE_URL)")
    parser.add_argument("--out-dir", default=None, help="Screenshot directory (or PORTAL_SHOTS_DIR, default prod_shots)")
    parser.add_argument("--flows-file", help="JSON flow plan to run instead of the built-in flows")
    parser.add_argument("--flow", action="append", dest="flows", metavar="NAME", help="Only run this flow (repeatable)")
    parser.add_argument("--headful", action="store_true", help="Run browser headful for debugging")
    parser.add_argument("--full-page", action="store_true", help="Capture the full scrollable page in every flow")
    parser.add_argument("--selector-timeout-ms", type=int, default=2500, help="Wait per selector candidate")
    parser.add_argument("--timeout-ms", type=int, default=30000, help="Default page operation timeout")
    parser.add_argument("--clean", action="store_true", help="Delete existing screenshots in the output directory first")
    parser.add_argument("--list-flows", action="store_true", help="Print the selected flows and exit")
    parser.add_argument("--verbose", action="store_true", help="Print selector and navigation details")
    return parser


def build_config(args: argparse.Namespace, environ=None) -> RunConfig:
    environ = os.environ if environ is None else environ
    return RunConfig(
        base_url=args.base_url or environ.get("PORTAL_BASE_URL", ""),
        output_dir=Path(args.out_dir or environ.get("PORTAL_SHOTS_DIR") or "prod_shots"),
        headless=not args.headful,
        full_page=True if args.full_page else None,
        selector_timeout_ms=args.selector_timeout_ms,
        default_timeout_ms=args.timeout_ms,
        credentials=credentials_from_env(environ),
        clean=args.clean,
    )


def main(argv: Optional[list] = None) -> None:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    reporter = RunReporter(verbose=args.verbose)

    try:
        plan = load_plan(Path(args.flows_file)) if args.flows_file else default_plan()
        plan = plan.select(args.flows)
    except (FlowFileError, ValueError) as e:
        parser.exit(2, f"{parser.prog}: error: {e}\n")

    if args.list_flows:
        for line in describe_plan(plan):
            print(line)
        return

    if not (args.base_url or os.environ.get("PORTAL_BASE_URL")):
        parser.error("--base-url or PORTAL_BASE_URL is required")
    try:
        config = build_config(args)
    except ValidationError as e:
        parser.exit(2, f"{parser.prog}: error: {e}\n")

    missing = [r.value for r in {f.role for f in plan.flows if f.role} if r not in config.credentials]
    for role in sorted(missing):
        reporter.detail(f"No {role} credentials configured; login will try demo auto-fill")

    print(f"📸 Capturing {len(plan.flows)} flow(s) from {config.base_url} into {config.output_dir}")
    try:
        summary = asyncio.run(run_flows(config, plan, reporter))
    except (FatalRunError, PlaywrightError, OSError) as e:
        reporter.error(str(e))
        sys.exit(1)

    print(f"✅ Done. {summary.count} screenshot(s) in {summary.output_dir}")


if __name__ == "__main__":
    main()
