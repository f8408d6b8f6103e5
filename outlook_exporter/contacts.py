"""Address book export.

Contacts are exported field by field, no aggregation. Each Outlook contact
property maps to one CSV column and one JSON key.
"""

from __future__ import annotations

import datetime as dt
import logging
from itertools import islice
from typing import Any, Dict, List, Optional, Sequence, TextIO

from .errors import ItemFailure
from .exporters import render_grid, write_csv_rows, write_json_objects
from .provider import ItemKind, Provider

LOGGER = logging.getLogger(__name__)

# (CSV header, JSON key, Outlook property, is a date)
CONTACT_FIELDS = [
    ("Full Name", "FullName", "FullName", False),
    ("First Name", "FirstName", "FirstName", False),
    ("Last Name", "LastName", "LastName", False),
    ("Middle Name", "MiddleName", "MiddleName", False),
    ("Email 1", "Email1", "Email1Address", False),
    ("Email 2", "Email2", "Email2Address", False),
    ("Email 3", "Email3", "Email3Address", False),
    ("Company", "Company", "CompanyName", False),
    ("Job Title", "JobTitle", "JobTitle", False),
    ("Department", "Department", "Department", False),
    ("Business Phone", "BusinessPhone", "BusinessTelephoneNumber", False),
    ("Home Phone", "HomePhone", "HomeTelephoneNumber", False),
    ("Mobile Phone", "MobilePhone", "MobileTelephoneNumber", False),
    ("Business Fax", "BusinessFax", "BusinessFaxNumber", False),
    ("Business Address", "BusinessAddress", "BusinessAddress", False),
    ("Home Address", "HomeAddress", "HomeAddress", False),
    ("Birthday", "Birthday", "Birthday", True),
    ("Anniversary", "Anniversary", "Anniversary", True),
    ("Notes", "Notes", "Body", False),
    ("Categories", "Categories", "Categories", False),
]

CSV_HEADERS = [f[0] for f in CONTACT_FIELDS]
JSON_KEYS = [f[1] for f in CONTACT_FIELDS]
CONTACT_PROPERTIES = [f[2] for f in CONTACT_FIELDS]

TABLE_COLUMNS = ["FullName", "Email1", "Company", "JobTitle", "MobilePhone", "BusinessPhone"]
TABLE_HEADERS = ["Name", "Email", "Company", "Job Title", "Mobile", "Business Phone"]
TABLE_WIDTH_CAP = 40


def format_date(value) -> str:
    # Outlook uses 1/1/4501 for "no date"
    if isinstance(value, dt.datetime) and 1900 < value.year < 4500:
        return value.strftime("%Y-%m-%d")
    return ""


def as_text(value) -> str:
    if value is None:
        return ""
    return str(value)


def map_contact(properties: Dict[str, Any]) -> Dict[str, str]:
    """JSON key -> string value for one contact's properties."""
    row = {}
    for _, key, prop, is_date in CONTACT_FIELDS:
        value = properties.get(prop)
        row[key] = format_date(value) if is_date else as_text(value)
    return row


def collect_contacts(provider: Provider, folder, limit: Optional[int] = 0) -> List[Dict[str, str]]:
    contacts = []
    with provider.open_items(folder) as batch:
        LOGGER.info("Found %d items in contacts folder", batch.count)
        total = min(limit, batch.count) if limit else batch.count
        for index, item in enumerate(islice(batch.items, total), start=1):
            try:
                if item.kind is not ItemKind.CONTACT:
                    continue
                contacts.append(map_contact(item.properties()))
            except Exception as e:
                LOGGER.warning("Skipping unreadable contact %s", ItemFailure(index, e))
                continue
            if len(contacts) % 10 == 0:
                LOGGER.debug("Read %d contacts...", len(contacts))
    return contacts


def write_contacts_csv(contacts: Sequence[Dict[str, str]], path) -> int:
    return write_csv_rows(path, CSV_HEADERS, [[c.get(k, "") for k in JSON_KEYS] for c in contacts])


def write_contacts_json(contacts: Sequence[Dict[str, str]], path) -> int:
    return write_json_objects(path, [{k: c.get(k, "") for k in JSON_KEYS} for c in contacts])


def render_contacts_table(contacts: Sequence[Dict[str, str]], cap: int = TABLE_WIDTH_CAP) -> str:
    if not contacts:
        return "No contacts to display."
    cells = [[c.get(k, "") for k in TABLE_COLUMNS] for c in contacts]
    lines = render_grid(TABLE_HEADERS, cells, cap)
    lines.append("")
    lines.append(f"Total: {len(contacts)} contacts")
    return "\n".join(lines)


def print_contacts_table(contacts: Sequence[Dict[str, str]], stream: Optional[TextIO] = None,
                         cap: int = TABLE_WIDTH_CAP) -> int:
    print(render_contacts_table(contacts, cap), file=stream)
    return len(contacts)


CONTACT_FORMATS = {
    "csv": (".csv", write_contacts_csv),
    "json": (".json", write_contacts_json),
    "matrix": (None, print_contacts_table),
}
