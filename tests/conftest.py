"""In-memory stand-ins for Outlook, shared by the test suite."""

from __future__ import annotations

import dataclasses
import datetime as dt
from contextlib import contextmanager
from typing import Dict, List, Optional

import pytest

from outlook_exporter.ledger import Role
from outlook_exporter.provider import (Account, ContactItem, FolderNode, Item, ItemBatch, ItemKind, MailItem,
                                       Party, Provider, default_folder_id, find_folder)

T1 = dt.datetime(2024, 1, 10, 9, 0, 0)
T2 = dt.datetime(2024, 2, 20, 14, 30, 5)
T3 = dt.datetime(2024, 3, 5, 18, 45, 0)


class FakeMail(MailItem):
    def __init__(self, sender: Party, recipients=(), timestamp: Optional[dt.datetime] = None):
        self._sender = sender
        self._recipients = list(recipients)
        self._timestamp = timestamp

    def sender(self) -> Party:
        return self._sender

    def recipients(self) -> List[Party]:
        return list(self._recipients)

    def timestamp(self):
        return self._timestamp


class BrokenMail(MailItem):
    """Fails on recipient enumeration, after the sender was read."""

    def __init__(self, sender: Party):
        self._sender = sender

    def sender(self) -> Party:
        return self._sender

    def recipients(self) -> List[Party]:
        raise RuntimeError("property access failed")

    def timestamp(self):
        return T1


class FakeContact(ContactItem):
    def __init__(self, **properties):
        self._properties = properties

    def properties(self) -> Dict[str, object]:
        return dict(self._properties)


class BrokenContact(ContactItem):
    def properties(self):
        raise RuntimeError("contact is corrupt")


class Appointment(Item):
    kind = ItemKind.OTHER


class DroppedConnection(list):
    """Folder items that fail after the first one is handed out."""

    def __iter__(self):
        yield self[0]
        raise RuntimeError("connection to the store was lost")


class FakeFolder:
    def __init__(self, Name: str, items=(), children=(), sortable: bool = True):
        self.Name = Name
        self.items = list(items)
        self.children = list(children)
        self.sortable = sortable


class FakeStore:
    def __init__(self, DisplayName: str, folders=()):
        self.DisplayName = DisplayName
        self.folders = list(folders)


class FakeProvider(Provider):
    def __init__(self, accounts: Optional[List[Account]] = None,
                 default_folders: Optional[Dict[int, FakeFolder]] = None,
                 contacts: Optional[FakeFolder] = None,
                 broken_stores=()):
        self.accounts = accounts or []
        self.default_folders = default_folders or {}
        self.contacts = contacts
        self.broken_stores = set(broken_stores)
        self.released = []
        self.opened = []
        self.entered = False
        self.exited = False

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exited = True

    def list_accounts(self) -> List[Account]:
        return [dataclasses.replace(a) for a in self.accounts]

    def default_folder(self, logical_name: str):
        return self.default_folders.get(default_folder_id(logical_name))

    def account_folder(self, account_address: str, logical_name: str):
        for account in self.accounts:
            if account.address.lower() == account_address.lower():
                return self.resolve_folder(account.store, logical_name)
        return None

    def resolve_folder(self, store, logical_name: str):
        if store.DisplayName in self.broken_stores:
            raise RuntimeError("store is offline")
        return find_folder(store.folders, logical_name, lambda f: f.Name)

    @contextmanager
    def open_items(self, folder):
        self.opened.append(folder.Name)
        try:
            yield ItemBatch(iter(folder.items), len(folder.items), folder.sortable)
        finally:
            self.released.append(folder.Name)

    def contacts_folder(self, path=None):
        folder = self.contacts
        for part in (path or "").strip("/").split("/"):
            if not part or part.lower() == "contacts" or folder is None:
                continue
            folder = next((c for c in folder.children if c.Name == part), None)
        return folder

    def folder_tree(self, folder) -> FolderNode:
        return FolderNode(folder.Name, len(folder.items), [self.folder_tree(c) for c in folder.children])

    def release(self, handle) -> None:
        self.released.append(getattr(handle, "Name", None) or getattr(handle, "DisplayName", None))


def mail(sender: str, name: str = "", to=(), cc=(), bcc=(), when=None) -> FakeMail:
    recipients = [Party(a, n, Role.TO) for a, n in to]
    recipients += [Party(a, n, Role.CC) for a, n in cc]
    recipients += [Party(a, n, Role.BCC) for a, n in bcc]
    return FakeMail(Party(sender, name), recipients, when)


@pytest.fixture
def inbox() -> FakeFolder:
    return FakeFolder("Inbox", [
        mail("alice@co.com", "Alice", when=T1),
        mail("bob@co.com", "Bob", to=[("alice@co.com", "Alice")], when=T2),
    ])


@pytest.fixture
def provider(inbox: FakeFolder) -> FakeProvider:
    return FakeProvider(
        accounts=[Account("me@co.com", "Me", FakeStore("me@co.com", [inbox]), "Exchange")],
        default_folders={6: inbox},
    )
