"""
Outlook Exporter - command line

Export contacts, or the ranked correspondents of one or all mailboxes, from
Microsoft Outlook to CSV / JSON / a console table.

Usage:
    python main.py                                  # contacts to CSV
    python main.py --json --matrix                  # contacts to JSON and a table
    python main.py --recipients --limit 100         # Inbox correspondents to CSV
    python main.py -r -m "Sent Items" --all-accounts --csv --json --matrix
    python main.py --list-accounts
"""

from __future__ import annotations

import argparse
import datetime as dt
import logging
import os
import sys
from typing import Callable, Optional

import yaml

from .config import AppConfig, load_config
from .errors import ConnectionFailure
from .pipeline import (ExportOptions, print_accounts, print_contact_folders,
                       run_contacts_export, run_recipient_export)

LOGGER = logging.getLogger(__name__)


def setup_logging(level: str):
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s"
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Export contacts or email correspondents from Microsoft Outlook to CSV/JSON")
    parser.add_argument("--config", default=None, help="Path to config YAML (default: config.yaml if present)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    contacts = parser.add_argument_group("contacts mode (default)")
    contacts.add_argument("-f", "--folder", default=None,
                          help="Contacts folder path, e.g. \"Contacts/Work Contacts\"")
    contacts.add_argument("-l", "--list", action="store_true", dest="list_folders",
                          help="List contact folders and exit")

    recipients = parser.add_argument_group("email recipients mode")
    recipients.add_argument("-r", "--recipients", action="store_true",
                            help="Export email correspondents instead of contacts")
    recipients.add_argument("-m", "--mailfolder", default=None,
                            help="Mail folder to process: Inbox, \"Sent Items\", Outbox, Drafts (default: Inbox)")
    recipients.add_argument("--limit", type=int, default=None,
                            help="Maximum number of emails to process per folder (0 = all)")
    recipients.add_argument("-a", "--account", default=None, help="Process this email account only")
    recipients.add_argument("--all-accounts", action="store_true", help="Process every configured account")
    recipients.add_argument("--list-accounts", action="store_true", help="List configured accounts and exit")

    output = parser.add_argument_group("output (can be combined; CSV when none given)")
    output.add_argument("-o", "--output", default=None,
                        help="Output base path; the extension is replaced or added per format")
    output.add_argument("--csv", action="store_true", help="Export to CSV")
    output.add_argument("--json", action="store_true", help="Export to JSON")
    output.add_argument("--matrix", action="store_true", help="Print a table to the terminal")

    args = parser.parse_args(argv)
    if args.limit is not None and args.limit < 0:
        parser.error("--limit must be 0 or a positive number")
    if args.account and args.all_accounts:
        parser.error("--account and --all-accounts are mutually exclusive")
    return args


def build_options(args, cfg: AppConfig, now: Optional[dt.datetime] = None) -> ExportOptions:
    formats = [f for f in ("csv", "json", "matrix") if getattr(args, f)] or ["csv"]
    base = args.output
    if not base:
        stamp = (now or dt.datetime.now()).strftime("%Y%m%d_%H%M%S")
        prefix = "outlook_recipients" if args.recipients else "outlook_contacts"
        base = os.path.join(cfg.export.output_dir, f"{prefix}_{stamp}")
    return ExportOptions(
        formats=formats,
        output_base=base,
        mail_folder=args.mailfolder or cfg.outlook.mail_folder,
        limit=args.limit if args.limit is not None else cfg.export.limit,
        account=args.account,
        all_accounts=args.all_accounts,
        contacts_folder=args.folder,
        table_width_cap=cfg.export.table_width_cap,
        contacts_table_width_cap=cfg.export.contacts_table_width_cap,
    )


def outlook_provider(cfg: AppConfig):
    # Imported here so the rest of the package works without pywin32
    try:
        from .outlook_session import OutlookProvider
    except ImportError as e:
        raise ConnectionFailure(f"Outlook automation is unavailable: {e}") from e
    return OutlookProvider(profile=cfg.outlook.profile, folder_aliases=cfg.outlook.folder_aliases)


def run(args, cfg: AppConfig, provider) -> int:
    if args.list_accounts:
        print_accounts(provider)
        return 0
    if args.list_folders:
        return 0 if print_contact_folders(provider) else 1

    options = build_options(args, cfg)
    if args.recipients:
        print("\nProcessing email recipients...")
        print(f"Mail folder: {options.mail_folder}")
        if options.limit:
            print(f"Limit: {options.limit} emails per folder")
        if options.all_accounts:
            print("Mode: All accounts")
        elif options.account:
            print(f"Account: {options.account}")
        print(f"Output: {' + '.join(f.upper() for f in options.formats)}")
        outcome = run_recipient_export(provider, options)
    else:
        print("\nProcessing contacts...")
        if options.contacts_folder:
            print(f"From folder: {options.contacts_folder}")
        print(f"Output: {' + '.join(f.upper() for f in options.formats)}")
        outcome = run_contacts_export(provider, options)
    return 0 if outcome.ok else 1


def cli(argv=None, provider_factory: Optional[Callable[[AppConfig], object]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: Could not load config file {args.config}: {e}", file=sys.stderr)
        return 1
    setup_logging("DEBUG" if args.debug else cfg.logging.level)

    factory = provider_factory or outlook_provider
    try:
        with factory(cfg) as provider:
            return run(args, cfg, provider)
    except ConnectionFailure as e:
        LOGGER.error("%s", e)
        print("Failed to connect to Outlook. Make sure Outlook is installed.", file=sys.stderr)
        return 1
