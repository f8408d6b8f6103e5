"""Capability interface the exporter core consumes.

The core never touches COM objects directly. A provider hands out accounts,
folders and typed items; the Outlook implementation lives in
``outlook_session`` and tests use in-memory fakes.
"""

from __future__ import annotations

import abc
import datetime as dt
import enum
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, ContextManager, Dict, Iterable, Iterator, List, Optional, Sequence

from .ledger import Role


class ItemKind(enum.Enum):
    MAIL = "mail"
    CONTACT = "contact"
    OTHER = "other"


@dataclass(frozen=True)
class Party:
    address: str
    display_name: str = ""
    role: Role = Role.UNKNOWN


@dataclass
class Account:
    address: str
    display_name: str = ""
    store: Any = None
    account_type: str = ""


@dataclass
class ItemBatch:
    """Items of one folder, newest first when the provider could sort them."""
    items: Sequence[Any]
    count: int
    sorted_newest_first: bool = True


@dataclass
class FolderNode:
    name: str
    item_count: int = 0
    children: List["FolderNode"] = field(default_factory=list)


class Item(abc.ABC):
    kind: ItemKind = ItemKind.OTHER


class MailItem(Item):
    kind = ItemKind.MAIL

    @abc.abstractmethod
    def sender(self) -> Party:
        ...

    @abc.abstractmethod
    def recipients(self) -> List[Party]:
        ...

    @abc.abstractmethod
    def timestamp(self) -> Optional[dt.datetime]:
        ...


class ContactItem(Item):
    kind = ItemKind.CONTACT

    @abc.abstractmethod
    def properties(self) -> Dict[str, Any]:
        """Outlook property name -> raw value."""
        ...


class Provider(abc.ABC):

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return None

    @abc.abstractmethod
    def list_accounts(self) -> List[Account]:
        ...

    @abc.abstractmethod
    def default_folder(self, logical_name: str):
        """Folder of the default store for a logical name, or None."""
        ...

    @abc.abstractmethod
    def account_folder(self, account_address: str, logical_name: str):
        """Folder of the account with this address, or None."""
        ...

    @abc.abstractmethod
    def resolve_folder(self, store, logical_name: str):
        ...

    @abc.abstractmethod
    def open_items(self, folder) -> ContextManager[ItemBatch]:
        """Context manager yielding an ItemBatch; releases the handles on exit."""
        ...

    def contacts_folder(self, path: Optional[str] = None):
        raise NotImplementedError(f"{type(self).__name__} does not expose contacts")

    def folder_tree(self, folder) -> FolderNode:
        raise NotImplementedError(f"{type(self).__name__} does not expose folder trees")

    def release(self, handle) -> None:
        """Hook for providers that pin resources behind a handle.

        Callers drop their own references; COM objects are freed once the
        last one goes.
        """

    @contextmanager
    def holding(self, handle) -> Iterator[Any]:
        try:
            yield handle
        finally:
            if handle is not None:
                self.release(handle)

    def drop_store(self, account: Account) -> None:
        """Release an account's delivery store and forget the reference."""
        if account.store is not None:
            self.release(account.store)
            account.store = None


# Logical folder name -> patterns that identify it in a (possibly localized)
# folder name. A pattern matches as a substring; one starting with "=" must
# equal the whole name. Append entries for new locales.
FOLDER_ALIASES: Dict[str, List[str]] = {
    "inbox": ["inbox", "=postvak in"],
    "sent": ["sent", "verzonden"],
    "sent items": ["sent", "verzonden"],
    "sentmail": ["sent", "verzonden"],
    "outbox": ["outbox", "postvak uit"],
    "drafts": ["draft", "concepten"],
}

# Outlook OlDefaultFolders ids for the default store
DEFAULT_FOLDER_IDS: Dict[str, int] = {
    "inbox": 6,
    "sent": 5,
    "sent items": 5,
    "sentmail": 5,
    "outbox": 4,
    "drafts": 16,
}
olFolderInbox = 6
olFolderContacts = 10


def default_folder_id(logical_name: str) -> int:
    return DEFAULT_FOLDER_IDS.get((logical_name or "").strip().lower(), olFolderInbox)


def pattern_matches(name: str, pattern: str) -> bool:
    if pattern.startswith("="):
        return name == pattern[1:]
    return pattern in name


def folder_matches(folder_name: str, logical_name: str,
                   aliases: Optional[Dict[str, List[str]]] = None) -> bool:
    """Locale tolerant folder match.

    Known logical names match any real name that one of their patterns
    matches; anything else must equal the requested name ignoring case.
    """
    table = aliases if aliases is not None else FOLDER_ALIASES
    name = (folder_name or "").strip().lower()
    wanted = (logical_name or "").strip().lower()
    patterns = table.get(wanted)
    if patterns is None:
        return name == wanted
    return any(pattern_matches(name, p) for p in patterns)


def find_folder(folders: Iterable[Any], logical_name: str, name_of,
                aliases: Optional[Dict[str, List[str]]] = None):
    for folder in folders:
        if folder_matches(name_of(folder), logical_name, aliases):
            return folder
    return None


def merge_aliases(extra: Optional[Dict[str, List[str]]]) -> Dict[str, List[str]]:
    table = {k: list(v) for k, v in FOLDER_ALIASES.items()}
    for name, patterns in (extra or {}).items():
        key = name.strip().lower()
        table.setdefault(key, [])
        for p in patterns or []:
            p = str(p).strip().lower()
            if p and p not in table[key]:
                table[key].append(p)
    return table
