"""
PassVault - CSV import/export

Thin mapping between CSV files and the vault's mutation API. Import goes
through Vault.add_section()/add_account(), so every record is persisted the
same way as an edit made by hand.

Import understands the column names of common exports (Chrome, Brave,
older PassManager files):

    section   : Sección, Section
    name      : De qué es la cuenta, name, Name, Type
    url       : url, URL
    username  : Email, username, Username
    password  : Contraseña, password, Password
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .vault import Vault

logger = logging.getLogger("passvault.csv_io")

EXPORT_FIELDS = ["Section", "Type", "Email", "Password"]

SECTION_COLUMNS = ("Sección", "Section")
NAME_COLUMNS = ("De qué es la cuenta", "name", "Name", "Type")
URL_COLUMNS = ("url", "URL")
USERNAME_COLUMNS = ("Email", "username", "Username")
PASSWORD_COLUMNS = ("Contraseña", "password", "Password")

DEFAULT_SECTION = "Imported"
DEFAULT_TYPE = "Unknown"
DEFAULT_IDENTIFIER = "No email"


def default_export_name() -> str:
    return f"PassVault_Export_{datetime.now():%Y%m%d_%H%M%S}.csv"


def _first(row: Dict[str, Optional[str]], columns: Sequence[str]) -> str:
    for column in columns:
        value = row.get(column)
        if value is not None:
            return value.strip()
    return ""


def export_csv(vault: Vault, path: Union[str, Path]) -> int:
    """
    Write one row per account (Section, Type, Email, Password).

    Returns:
        Number of accounts written
    """
    rows = []
    for section in vault.sections:
        for account in section.accounts:
            rows.append({
                "Section": section.name,
                "Type": account.type,
                "Email": account.identifier,
                "Password": account.secret,
            })

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        writer.writerows(rows)

    logger.info("Exported %d accounts", len(rows))
    return len(rows)


def read_csv(path: Union[str, Path]) -> List[Dict[str, str]]:
    """
    Parse a CSV file into records with keys section/name/url/username/password.

    Rows without a password are skipped.
    """
    records = []
    with open(path, newline="", encoding="utf-8-sig") as f:
        for row in csv.DictReader(f):
            record = {
                "section": _first(row, SECTION_COLUMNS),
                "name": _first(row, NAME_COLUMNS),
                "url": _first(row, URL_COLUMNS),
                "username": _first(row, USERNAME_COLUMNS),
                "password": _first(row, PASSWORD_COLUMNS),
            }
            if record["password"]:
                records.append(record)
    return records


def import_records(vault: Vault, records: Sequence[Dict[str, str]]) -> int:
    """
    Add records to the vault, creating sections as needed.

    Sections are matched by name, case-insensitively. The account type is the
    record's name, else its URL, else "Unknown".

    Returns:
        Number of accounts added
    """
    count = 0
    for record in records:
        section_name = record.get("section") or DEFAULT_SECTION
        section = vault.find_section(section_name)
        if section is None:
            section = vault.add_section(section_name)

        account_type = record.get("name") or record.get("url") or DEFAULT_TYPE
        identifier = record.get("username") or DEFAULT_IDENTIFIER
        vault.add_account(section, account_type, identifier, record["password"])
        count += 1

    logger.info("Imported %d accounts", count)
    return count


def import_csv(vault: Vault, path: Union[str, Path]) -> int:
    """read_csv() + import_records()."""
    return import_records(vault, read_csv(path))
