from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from .addresses import is_internal_form

LOGGER = logging.getLogger(__name__)

# PR_SMTP_ADDRESS (unicode)
SMTP_PROP = 'http://schemas.microsoft.com/mapi/proptag/0x39FE001F'

# OlAddressEntryUserType
EXCHANGE_USER_ENTRY = 0
EXCHANGE_DL_ENTRY = 1

# Outlook stores "no date" as 1/1/4501
_NO_DATE_YEAR = 4501


def safe_getattr(obj, name: str, default=None):
    try:
        value = getattr(obj, name)
    except Exception:
        return default
    return default if value is None else value


def safe_str(obj, name: str) -> str:
    value = safe_getattr(obj, name, "")
    try:
        return str(value)
    except Exception:
        return ""


def as_datetime(value) -> Optional[dt.datetime]:
    """Plain naive datetime for a COM time value, or None.

    pywintypes times carry a tzinfo that Outlook does not honour; dropping it
    keeps every timestamp comparable with every other.
    """
    if not isinstance(value, dt.datetime):
        return None
    if value.year >= _NO_DATE_YEAR:
        return None
    return dt.datetime(value.year, value.month, value.day,
                       value.hour, value.minute, value.second)


def smtp_from_address_entry(address_entry) -> str:
    """Routable address for an AddressEntry, or "" when none can be resolved.

    Tries the directory first (SMTP entries, Exchange users and distribution
    lists), then the PR_SMTP_ADDRESS property.
    """
    if address_entry is None:
        return ""
    entry_type = safe_str(address_entry, "Type")
    if entry_type.upper() == "SMTP":
        addr = safe_str(address_entry, "Address")
        if addr:
            return addr

    user_type = safe_getattr(address_entry, "AddressEntryUserType", None)
    if user_type == EXCHANGE_USER_ENTRY:
        try:
            exu = address_entry.GetExchangeUser()
            smtp = safe_str(exu, "PrimarySmtpAddress") if exu is not None else ""
            if smtp:
                return smtp
        except Exception as e:
            LOGGER.debug("GetExchangeUser failed: %s", e)
    elif user_type == EXCHANGE_DL_ENTRY:
        try:
            edl = address_entry.GetExchangeDistributionList()
            smtp = safe_str(edl, "PrimarySmtpAddress") if edl is not None else ""
            if smtp:
                return smtp
        except Exception as e:
            LOGGER.debug("GetExchangeDistributionList failed: %s", e)

    try:
        pa = address_entry.PropertyAccessor
        smtp = pa.GetProperty(SMTP_PROP) if pa is not None else ""
        if smtp:
            return str(smtp)
    except Exception as e:
        LOGGER.debug("PR_SMTP_ADDRESS lookup failed: %s", e)
    return ""


def pick_address(direct: str, address_entry) -> str:
    """Most specific address available for one sender or recipient slot.

    (a) the direct address, unless it is an internal Exchange form
    (b) the directory-resolved SMTP address of the entry
    (c) its PR_SMTP_ADDRESS property
    (d) the raw address, even if internal: the direct one when given,
        else the entry's own
    """
    if direct and not is_internal_form(direct):
        return direct
    smtp = smtp_from_address_entry(address_entry)
    if smtp:
        return smtp
    if direct:
        return direct
    return safe_str(address_entry, "Address") if address_entry is not None else ""


def sender_address(mail_item) -> str:
    direct = safe_str(mail_item, "SenderEmailAddress")
    if direct and not is_internal_form(direct):
        return direct
    sender = safe_getattr(mail_item, "Sender", None)
    return pick_address(direct, sender)


def recipient_address(recipient) -> str:
    direct = safe_str(recipient, "Address")
    if direct and not is_internal_form(direct):
        return direct
    entry = safe_getattr(recipient, "AddressEntry", None)
    return pick_address(direct, entry)
