"""Outlook implementation of the provider interface, over COM (pywin32)."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

import pythoncom
import pywintypes
import win32com.client  # type: ignore

from . import outlook_utils as ou
from .contacts import CONTACT_PROPERTIES
from .errors import ConnectionFailure
from .ledger import recipient_role
from .provider import (Account, ContactItem, FolderNode, Item, ItemBatch, ItemKind, MailItem, Party,
                       Provider, default_folder_id, find_folder, merge_aliases, olFolderContacts)

LOGGER = logging.getLogger(__name__)

# OlObjectClass
MAILITEM_CLASS = 43
CONTACTITEM_CLASS = 40

# OlAccountType
ACCOUNT_TYPES = {0: "Exchange", 1: "IMAP", 2: "POP3", 3: "HTTP", 4: "EAS", 5: "Other"}


class OutlookMail(MailItem):
    def __init__(self, com_item):
        self._item = com_item

    def sender(self) -> Party:
        return Party(ou.sender_address(self._item), ou.safe_str(self._item, "SenderName"))

    def recipients(self) -> List[Party]:
        parties = []
        recipients = self._item.Recipients
        try:
            for i in range(1, recipients.Count + 1):
                r = recipients.Item(i)
                try:
                    parties.append(Party(
                        ou.recipient_address(r),
                        ou.safe_str(r, "Name"),
                        recipient_role(ou.safe_getattr(r, "Type", None)),
                    ))
                finally:
                    del r
        finally:
            del recipients
        return parties

    def timestamp(self):
        return ou.as_datetime(self._item.ReceivedTime)


class OutlookContact(ContactItem):
    def __init__(self, com_item):
        self._item = com_item

    def properties(self) -> Dict[str, object]:
        return {p: ou.safe_getattr(self._item, p, None) for p in CONTACT_PROPERTIES}


class OtherItem(Item):
    kind = ItemKind.OTHER


class UnreadableItem(Item):
    """Stands in for an item Outlook failed to hand out; any access re-raises."""

    def __init__(self, error: Exception):
        self._error = error

    @property
    def kind(self):
        raise self._error


def wrap_item(com_item) -> Item:
    item_class = ou.safe_getattr(com_item, "Class", 0)
    if item_class == MAILITEM_CLASS:
        return OutlookMail(com_item)
    if item_class == CONTACTITEM_CLASS:
        return OutlookContact(com_item)
    return OtherItem()


class OutlookProvider(Provider):
    def __init__(self, profile: Optional[str] = None, folder_aliases: Optional[Dict[str, List[str]]] = None):
        self.profile = profile
        self.aliases = merge_aliases(folder_aliases)
        self.outlook = None
        self.ns = None
        self._com_initialized = False

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def connect(self):
        pythoncom.CoInitialize()
        self._com_initialized = True
        try:
            LOGGER.info("Connecting to Outlook...")
            try:
                self.outlook = win32com.client.GetActiveObject("Outlook.Application")
                LOGGER.info("Connected to active Outlook instance.")
            except pywintypes.com_error:
                LOGGER.info("No active Outlook instance found, launching new one...")
                self.outlook = win32com.client.Dispatch("Outlook.Application")
            self.ns = self.outlook.GetNamespace("MAPI")
            if self.profile:
                self.ns.Logon(ProfileName=self.profile, ShowDialog=False, NewSession=False)
        except pywintypes.com_error as ce:
            self.close()
            raise ConnectionFailure(f"Failed to connect to Outlook (COM Error): {ce}") from ce
        except Exception as e:
            self.close()
            raise ConnectionFailure(f"Failed to connect to Outlook: {e}") from e

    def close(self):
        self.ns = None
        self.outlook = None
        if self._com_initialized:
            self._com_initialized = False
            try:
                pythoncom.CoUninitialize()
            except pywintypes.com_error as ce:
                LOGGER.debug("CoUninitialize failed: %s", ce)

    # --- accounts ---

    def list_accounts(self) -> List[Account]:
        result = []
        accounts = self.ns.Accounts
        try:
            for i in range(1, accounts.Count + 1):
                try:
                    account = accounts.Item(i)
                    address = ou.safe_str(account, "SmtpAddress")
                    if not address:
                        LOGGER.warning("Account %d has no SMTP address; skipped.", i)
                        continue
                    account_type = ou.safe_getattr(account, "AccountType", None)
                    result.append(Account(
                        address=address,
                        display_name=ou.safe_str(account, "DisplayName"),
                        store=ou.safe_getattr(account, "DeliveryStore", None),
                        account_type=ACCOUNT_TYPES.get(account_type, str(account_type or "")),
                    ))
                except pywintypes.com_error as ce:
                    LOGGER.warning("Could not read account %d (COM Error): %s", i, ce)
        finally:
            del accounts
        return result

    # --- folders ---

    def default_folder(self, logical_name: str):
        folder_id = default_folder_id(logical_name)
        try:
            return self.ns.GetDefaultFolder(folder_id)
        except pywintypes.com_error as ce:
            LOGGER.error("Could not get default folder ID %s (COM Error): %s", folder_id, ce)
            return None

    def account_folder(self, account_address: str, logical_name: str):
        accounts = self.list_accounts()
        try:
            for account in accounts:
                if account.address.lower() == account_address.lower() and account.store is not None:
                    return self.resolve_folder(account.store, logical_name)
        finally:
            for account in accounts:
                self.drop_store(account)
        LOGGER.warning("No account with address '%s' and a delivery store", account_address)
        return None

    def resolve_folder(self, store, logical_name: str):
        root = store.GetRootFolder()
        try:
            return find_folder(root.Folders, logical_name, lambda f: ou.safe_str(f, "Name"), self.aliases)
        finally:
            del root

    def contacts_folder(self, path: Optional[str] = None):
        try:
            folder = self.ns.GetDefaultFolder(olFolderContacts)
            for part in (path or "").strip("/").split("/"):
                if not part or part.lower() == "contacts":
                    continue
                folder = folder.Folders(part)
            return folder
        except pywintypes.com_error as ce:
            LOGGER.error("Error accessing contacts folder '%s': %s", path or "Contacts", ce)
            return None

    def folder_tree(self, folder) -> FolderNode:
        node = FolderNode(name=ou.safe_str(folder, "Name"), item_count=folder.Items.Count)
        for sub in folder.Folders:
            try:
                node.children.append(self.folder_tree(sub))
            except pywintypes.com_error as ce:
                LOGGER.warning("Error listing subfolder of '%s': %s", node.name, ce)
            finally:
                del sub
        return node

    # --- items ---

    @contextmanager
    def open_items(self, folder) -> Iterator[ItemBatch]:
        items = folder.Items
        sorted_newest_first = True
        try:
            items.Sort("[ReceivedTime]", True)
        except pywintypes.com_error as ce:
            LOGGER.debug("Could not sort items by ReceivedTime: %s", ce)
            sorted_newest_first = False
        try:
            yield ItemBatch(self._iter_items(items), items.Count, sorted_newest_first)
        finally:
            del items

    def _iter_items(self, items) -> Iterator[Item]:
        count = items.Count
        for i in range(1, count + 1):
            if i > items.Count:
                LOGGER.warning("Folder item count changed during processing. Stopping.")
                break
            try:
                com_item = items.Item(i)
            except pywintypes.com_error as ce:
                yield UnreadableItem(ce)
                continue
            try:
                yield wrap_item(com_item)
            finally:
                del com_item
