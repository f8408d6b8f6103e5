from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from functools import partial
from itertools import islice
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .addresses import normalize
from .errors import AccountFailure, ItemFailure
from .ledger import Ledger, Role
from .provider import Account, ItemKind, Party, Provider

LOGGER = logging.getLogger(__name__)

PROGRESS_EVERY = 100


@dataclass
class WalkResult:
    ledger: Ledger = field(default_factory=Ledger)
    processed: int = 0
    failed_items: int = 0
    skipped_accounts: List[str] = field(default_factory=list)
    failed_sources: List[str] = field(default_factory=list)


def read_mail(item) -> Tuple[Optional[dt.datetime], List[Party]]:
    """Every event of one mail item, read completely before anything is merged."""
    timestamp = item.timestamp()
    events = []
    sender = item.sender()
    if sender is not None and normalize(sender.address):
        events.append(Party(sender.address, sender.display_name, Role.SENDER))
    for recipient in item.recipients():
        if normalize(recipient.address):
            events.append(recipient)
    return timestamp, events


def walk_folder(provider: Provider, folder, ledger: Ledger, limit: Optional[int] = 0,
                account: str = "default", result: Optional[WalkResult] = None) -> int:
    """Merge the mail items of one folder into ``ledger``.

    At most ``limit`` items are visited (0 or None: all of them), newest
    first when the provider managed to sort. A failing item is logged and
    skipped. Returns the number of mail items read.
    """
    processed = 0
    with provider.open_items(folder) as batch:
        if not batch.sorted_newest_first:
            LOGGER.debug("Items of %s are in native order; limit applies to an unsorted subset.", account)
        total = min(limit, batch.count) if limit else batch.count
        LOGGER.info("Processing %d of %d items for %s", total, batch.count, account)

        for index, item in enumerate(islice(batch.items, total), start=1):
            try:
                if item.kind is not ItemKind.MAIL:
                    continue
                timestamp, events = read_mail(item)
            except Exception as e:
                failure = ItemFailure(index, e)
                LOGGER.warning("Skipping unreadable %s", failure)
                if result is not None:
                    result.failed_items += 1
                continue

            for party in events:
                ledger.merge_or_create(party.address, party.display_name, party.role, account, timestamp)
            processed += 1
            if processed % PROGRESS_EVERY == 0:
                LOGGER.info("Processed %d/%d items (%d correspondents)...", processed, total, len(ledger))
    return processed


def walk_source(provider: Provider, locate: Callable[[], Any], folder_name: str,
                limit: Optional[int], label: str) -> Optional[WalkResult]:
    """Walk one account's folder into a fresh result.

    Returns None when ``locate`` finds no folder. Provider errors while
    locating or reading the folder raise AccountFailure and leave nothing
    behind.
    """
    try:
        folder = locate()
    except Exception as e:
        raise AccountFailure(label, f"could not resolve '{folder_name}': {e}") from e
    if folder is None:
        return None
    part = WalkResult()
    with provider.holding(folder):
        try:
            part.processed = walk_folder(provider, folder, part.ledger, limit, label, part)
        except Exception as e:
            raise AccountFailure(label, f"could not open '{folder_name}': {e}") from e
    return part


def walk_accounts(provider: Provider, accounts: Sequence[Account], folder_name: str,
                  limit: Optional[int] = 0) -> WalkResult:
    """All-accounts mode: one folder per account, a broken account contributes nothing."""
    result = WalkResult()
    for account in accounts:
        try:
            if account.store is None:
                raise AccountFailure(account.address, "no delivery store")
            part = walk_source(provider, partial(provider.resolve_folder, account.store, folder_name),
                               folder_name, limit, account.address)
            if part is None:
                raise AccountFailure(account.address, f"no folder matching '{folder_name}'")
        except AccountFailure as e:
            LOGGER.error("Skipping account %s", e)
            result.skipped_accounts.append(account.address)
            continue
        finally:
            provider.drop_store(account)
        result.ledger.absorb(part.ledger)
        result.processed += part.processed
        result.failed_items += part.failed_items
    return result


def walk(provider: Provider, folder_name: str = "Inbox", limit: Optional[int] = 0,
         account: Optional[str] = None, all_accounts: bool = False,
         accounts: Optional[Sequence[Account]] = None) -> WalkResult:
    """Build the correspondent ledger for one invocation."""
    if all_accounts:
        if accounts is None:
            accounts = provider.list_accounts()
        LOGGER.info("Walking '%s' across %d account(s)", folder_name, len(accounts))
        return walk_accounts(provider, accounts, folder_name, limit)

    label = account or "default"
    if account:
        locate = partial(provider.account_folder, account, folder_name)
    else:
        locate = partial(provider.default_folder, folder_name)
    try:
        part = walk_source(provider, locate, folder_name, limit, label)
    except AccountFailure as e:
        LOGGER.error("Could not read mail %s", e)
        result = WalkResult()
        result.failed_sources.append(f"{label} ({folder_name})")
        return result
    if part is None:
        LOGGER.error("Could not find folder '%s' for account '%s'", folder_name, label)
        return WalkResult()
    return part
