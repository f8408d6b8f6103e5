from __future__ import annotations

import datetime as dt
import enum
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .addresses import normalize

LOGGER = logging.getLogger(__name__)


class Role(str, enum.Enum):
    SENDER = "Sender"
    TO = "To"
    CC = "CC"
    BCC = "BCC"
    UNKNOWN = "Unknown"


# OlMailRecipientType
RECIPIENT_TYPES = {1: Role.TO, 2: Role.CC, 3: Role.BCC}


def recipient_role(recipient_type) -> Role:
    return RECIPIENT_TYPES.get(recipient_type, Role.UNKNOWN)


@dataclass
class CorrespondentRecord:
    address: str
    display_name: str
    role: Role
    source_account: str
    contact_count: int = 0
    last_seen_at: Optional[dt.datetime] = None

    @property
    def key(self) -> str:
        return normalize(self.address)

    def observe(self, timestamp: Optional[dt.datetime]) -> None:
        self.contact_count += 1
        if timestamp is not None and (self.last_seen_at is None or timestamp > self.last_seen_at):
            self.last_seen_at = timestamp


class Ledger:
    """Correspondents keyed by case-folded address.

    Written by a single walker, then only read. Duplicate observations are
    the normal case and simply bump the statistics.
    """

    def __init__(self):
        self._records: Dict[str, CorrespondentRecord] = {}

    def merge_or_create(self, address: str, display_name: str, role: Role,
                        account: str, timestamp: Optional[dt.datetime]) -> CorrespondentRecord:
        key = normalize(address)
        if not key:
            raise ValueError("cannot store an empty address")
        record = self._records.get(key)
        if record is None:
            record = CorrespondentRecord(
                address=address.strip(),
                display_name=display_name or "",
                role=role,
                source_account=account or "",
            )
            self._records[key] = record
        else:
            record.display_name = display_name or ""
        record.observe(timestamp)
        return record

    def get(self, address: str) -> Optional[CorrespondentRecord]:
        return self._records.get(normalize(address))

    def records(self) -> List[CorrespondentRecord]:
        return list(self._records.values())

    def __contains__(self, address) -> bool:
        return normalize(address) in self._records

    def __iter__(self) -> Iterator[CorrespondentRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def absorb(self, other: "Ledger") -> None:
        """Fold the records of a later walk into this ledger.

        First-seen address, role and account stay; counts add up, the later
        display name wins and ``last_seen_at`` keeps the maximum.
        """
        for incoming in other:
            record = self._records.get(incoming.key)
            if record is None:
                self._records[incoming.key] = incoming
                continue
            record.display_name = incoming.display_name
            record.contact_count += incoming.contact_count
            if incoming.last_seen_at is not None and (
                    record.last_seen_at is None or incoming.last_seen_at > record.last_seen_at):
                record.last_seen_at = incoming.last_seen_at
