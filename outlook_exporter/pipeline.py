from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, TextIO, Tuple

from .contacts import CONTACT_FORMATS, collect_contacts
from .errors import ExportFailure
from .exporters import FORMATS, output_path
from .outlook_utils import safe_str
from .provider import FolderNode, Provider
from .ranking import build_rows, own_account_addresses
from .walker import walk

LOGGER = logging.getLogger(__name__)

FORMAT_ORDER = ["csv", "json", "matrix"]


@dataclass
class ExportOptions:
    formats: List[str] = field(default_factory=lambda: ["csv"])
    output_base: Optional[str] = None
    mail_folder: str = "Inbox"
    limit: int = 0
    account: Optional[str] = None
    all_accounts: bool = False
    contacts_folder: Optional[str] = None
    table_width_cap: int = 50
    contacts_table_width_cap: int = 40


@dataclass
class ExportOutcome:
    found: int = 0
    processed: int = 0
    written: List[Path] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def run_exports(rows: Sequence, formats: Sequence[str], base: Optional[str],
                table: Dict[str, Tuple[Optional[str], Callable]], cap: int,
                stream: Optional[TextIO] = None, outcome: Optional[ExportOutcome] = None) -> ExportOutcome:
    """Hand the same rows to every requested exporter; one failure does not stop the others."""
    outcome = outcome or ExportOutcome()
    outcome.found = len(rows)
    stream = stream or sys.stdout
    for fmt in [f for f in FORMAT_ORDER if f in formats]:
        extension, writer = table[fmt]
        target = "console" if extension is None else str(output_path(base, extension))
        try:
            if extension is None:
                writer(rows, stream, cap)
            else:
                print(f"\nExporting to {fmt.upper()}: {target}", file=stream)
                writer(rows, target)
                outcome.written.append(Path(target).resolve())
        except (OSError, ValueError, TypeError) as e:
            failure = ExportFailure(target, e)
            LOGGER.error("%s export failed: %s", fmt.upper(), failure)
            print(f"Error: could not write {fmt.upper()} output to {target}: {e}", file=stream)
            outcome.failed.append(target)
    return outcome


def print_summary(outcome: ExportOutcome, noun: str, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    print("", file=stream)
    print("Export completed." if outcome.ok else "Some operations failed.", file=stream)
    print(f"  Unique {noun} found: {outcome.found}", file=stream)
    for path in outcome.written:
        print(f"  File: {path}", file=stream)
    for target in outcome.failed:
        print(f"  Failed: {target}", file=stream)


def run_recipient_export(provider: Provider, options: ExportOptions,
                         stream: Optional[TextIO] = None) -> ExportOutcome:
    """Walk once, rank, annotate and render every requested format."""
    stream = stream or sys.stdout
    try:
        accounts = provider.list_accounts()
    except Exception as e:
        LOGGER.warning("Could not enumerate accounts, no row will be marked as own: %s", e)
        accounts = []
    own = own_account_addresses(accounts)
    if not options.all_accounts:
        for account in accounts:
            provider.drop_store(account)
    LOGGER.info("%d own account address(es) configured", len(own))

    result = walk(
        provider,
        folder_name=options.mail_folder,
        limit=options.limit,
        account=options.account,
        all_accounts=options.all_accounts,
        accounts=accounts if options.all_accounts else None,
    )
    LOGGER.info("Processed %d mail items, %d skipped, %d correspondents",
                result.processed, result.failed_items, len(result.ledger))
    if result.skipped_accounts:
        LOGGER.warning("Skipped account(s): %s", ", ".join(result.skipped_accounts))

    rows = build_rows(result.ledger, own)
    outcome = ExportOutcome(processed=result.processed)
    for source in result.failed_sources:
        print(f"Error: could not read mail from {source}", file=stream)
        outcome.failed.append(source)
    run_exports(rows, options.formats, options.output_base, FORMATS,
                options.table_width_cap, stream, outcome)
    print_summary(outcome, "recipients", stream)
    return outcome


def run_contacts_export(provider: Provider, options: ExportOptions,
                        stream: Optional[TextIO] = None) -> ExportOutcome:
    stream = stream or sys.stdout
    folder = provider.contacts_folder(options.contacts_folder)
    if folder is None:
        outcome = ExportOutcome(failed=[options.contacts_folder or "Contacts"])
        print("Failed to access contacts folder", file=stream)
        return outcome
    with provider.holding(folder):
        contacts = collect_contacts(provider, folder, options.limit)
    outcome = ExportOutcome(processed=len(contacts))
    run_exports(contacts, options.formats, options.output_base, CONTACT_FORMATS,
                options.contacts_table_width_cap, stream, outcome)
    print_summary(outcome, "contacts", stream)
    return outcome


def print_accounts(provider: Provider, stream: Optional[TextIO] = None) -> int:
    stream = stream or sys.stdout
    accounts = provider.list_accounts()
    print(f"\nFound {len(accounts)} email account(s):\n", file=stream)
    for i, account in enumerate(accounts, start=1):
        store_name = safe_str(account.store, "DisplayName") if account.store is not None else ""
        provider.drop_store(account)
        print(f"  {i}. {account.display_name}", file=stream)
        print(f"     Email: {account.address}", file=stream)
        print(f"     Type:  {account.account_type}", file=stream)
        if store_name:
            print(f"     Store: {store_name}", file=stream)
        print("", file=stream)
    return len(accounts)


def format_tree(node: FolderNode, indent: str = "  ") -> List[str]:
    lines = []
    for child in node.children:
        lines.append(f"{indent}- {child.name} ({child.item_count} items)")
        lines.extend(format_tree(child, indent + "  "))
    return lines


def print_contact_folders(provider: Provider, stream: Optional[TextIO] = None) -> bool:
    stream = stream or sys.stdout
    folder = provider.contacts_folder(None)
    if folder is None:
        return False
    with provider.holding(folder):
        tree = provider.folder_tree(folder)
    print(f"\nMain Contacts Folder: {tree.name}", file=stream)
    print(f"Number of items: {tree.item_count}", file=stream)
    if tree.children:
        print("\nSubfolders:", file=stream)
        for line in format_tree(tree):
            print(line, file=stream)
    return True
