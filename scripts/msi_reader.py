#!/usr/bin/env python3
"""
MSI Property Reader
Reads values such as ProductVersion from the Property table of an MSI installer.

On Windows the database is opened through the Windows Installer automation
interface; database and view handles are always released, last acquired first.
Other platforms query the table with msiinfo from msitools.
"""

import contextlib
import logging
import re
import subprocess
import sys
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from update_errors import MsiFileNotFoundError, MsiQueryError, PropertyMissingError

MSI_OPEN_READONLY = 0
PRODUCT_VERSION = 'ProductVersion'
MSIINFO_TIMEOUT = 30  # seconds
_PROPERTY_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_.]*$')


def _create_installer() -> Any:
    """Windows Installer automation object (pywin32)"""
    import win32com.client

    return win32com.client.Dispatch('WindowsInstaller.Installer')


@contextlib.contextmanager
def open_view(database: Any, query: str) -> Iterator[Any]:
    """Open and execute a view, closing it on exit"""
    view = database.OpenView(query)
    try:
        view.Execute()
        yield view
    finally:
        view.Close()


@contextlib.contextmanager
def open_query(installer: Any, msi_path: Path, query: str) -> Iterator[Any]:
    """Open the database read-only and yield an executed view on it.

    The database object never leaves this frame, so dropping it after the
    view is closed releases the handle.
    """
    database = installer.OpenDatabase(str(msi_path), MSI_OPEN_READONLY)
    try:
        with open_view(database, query) as view:
            yield view
    finally:
        del database


def _property_query(property_name: str) -> str:
    return f"SELECT `Value` FROM `Property` WHERE `Property` = '{property_name}'"


def _query_with_installer(installer: Any, msi_path: Path, property_name: str) -> Optional[str]:
    with open_query(installer, msi_path, _property_query(property_name)) as view:
        record = view.Fetch()
        if record is None:
            return None
        return str(record.StringData(1))


def _query_with_msiinfo(msi_path: Path, property_name: str) -> Optional[str]:
    """Read the Property table via `msiinfo export` (msitools)"""
    cmd = ['msiinfo', 'export', str(msi_path), 'Property']
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=MSIINFO_TIMEOUT)
    except (OSError, subprocess.SubprocessError) as e:
        raise MsiQueryError(f"msiinfo failed for {msi_path}: {e}") from e

    if result.returncode != 0:
        raise MsiQueryError(f"msiinfo failed for {msi_path}: {result.stderr.strip() or result.stdout.strip()}")

    # IDT export: column names, column types, table name, then one row per line
    for line in result.stdout.splitlines()[3:]:
        name, sep, value = line.partition('\t')
        if sep and name == property_name:
            return value
    return None


def get_msi_property(
    msi_path: Union[str, Path],
    property_name: str = PRODUCT_VERSION,
    *,
    installer: Any = None,
) -> str:
    """
    Read one string property from an MSI installer

    Args:
        msi_path: Path to the .msi file
        property_name: Row name in the Property table
        installer: Windows Installer automation object; created on demand on Windows

    Returns:
        The trimmed property value

    Raises:
        MsiFileNotFoundError: msi_path does not exist
        PropertyMissingError: no row for property_name
        MsiQueryError: the database could not be read
    """
    path = Path(msi_path)
    if not path.is_file():
        raise MsiFileNotFoundError(f"MSI file not found: {path}")
    if not _PROPERTY_NAME.match(property_name):
        raise ValueError(f"Invalid MSI property name: {property_name!r}")

    if installer is None and sys.platform != 'win32':
        value = _query_with_msiinfo(path, property_name)
    else:
        if installer is None:
            installer = _create_installer()
        try:
            value = _query_with_installer(installer, path, property_name)
        except Exception as e:
            raise MsiQueryError(f"Could not query {property_name} from {path}: {e}") from e

    if value is None:
        raise PropertyMissingError(property_name, str(path))

    value = value.strip()
    logging.info(f"{property_name} of {path.name}: {value}")
    return value


def get_msi_version(msi_path: Union[str, Path], *, installer: Any = None) -> str:
    """ProductVersion of an MSI installer"""
    return get_msi_property(msi_path, PRODUCT_VERSION, installer=installer)
