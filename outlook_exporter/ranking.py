from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List

from .addresses import normalize
from .ledger import CorrespondentRecord, Ledger
from .provider import Account

LOGGER = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

COLUMNS = ["Email", "Name", "Type", "Account", "ContactCount", "LatestContactDate", "IsOwnAccount"]


@dataclass(frozen=True)
class ExportRow:
    email: str
    name: str
    type: str
    account: str
    contact_count: str
    latest_contact_date: str
    is_own_account: bool = False

    @classmethod
    def from_record(cls, record: CorrespondentRecord, is_own_account: bool = False) -> "ExportRow":
        return cls(
            email=record.address,
            name=record.display_name or "",
            type=record.role.value,
            account=record.source_account or "",
            contact_count=str(record.contact_count),
            latest_contact_date=record.last_seen_at.strftime(DATE_FORMAT) if record.last_seen_at else "",
            is_own_account=is_own_account,
        )

    def values(self) -> List[str]:
        return [
            self.email,
            self.name,
            self.type,
            self.account,
            self.contact_count,
            self.latest_contact_date,
            "Yes" if self.is_own_account else "",
        ]

    def as_dict(self) -> Dict[str, str]:
        return dict(zip(COLUMNS, self.values()))


def own_account_addresses(accounts: Iterable[Account]) -> FrozenSet[str]:
    """Normalized addresses of the locally configured accounts.

    An account whose address cannot be read is left out.
    """
    own = set()
    for account in accounts:
        try:
            key = normalize(account.address)
        except Exception as e:
            LOGGER.warning("Could not read address of account %r: %s", account, e)
            continue
        if key:
            own.add(key)
    return frozenset(own)


def rank(ledger: Iterable[CorrespondentRecord]) -> List[CorrespondentRecord]:
    """Most contacted first, then most recently seen; never-dated records last.

    ``sorted`` is stable, so full ties keep ledger insertion order.
    """
    return sorted(
        ledger,
        key=lambda r: (r.contact_count, r.last_seen_at is not None, r.last_seen_at),
        reverse=True,
    )


def classify(records: Iterable[CorrespondentRecord], own_addresses: FrozenSet[str]) -> List[ExportRow]:
    return [ExportRow.from_record(r, normalize(r.address) in own_addresses) for r in records]


def build_rows(ledger: Ledger, own_addresses: FrozenSet[str]) -> List[ExportRow]:
    return classify(rank(ledger), own_addresses)
