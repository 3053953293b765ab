#!/usr/bin/env python3
"""
Error types shared by the package update scripts.
Every fatal condition derives from UpdateError so the entry point can report
it and exit non-zero; missing fields are warnings and never raised.
"""


class UpdateError(Exception):
    """Base class for fatal update failures"""

    code = "update_failed"


class ConfigurationError(UpdateError):
    """Invalid or incomplete run configuration (e.g. no download URL)"""

    code = "configuration"


class DownloadError(UpdateError):
    """Download still failing after all retry attempts"""

    code = "download_failed"

    def __init__(self, url: str, attempts: int, reason: str = ""):
        self.url = url
        self.attempts = attempts
        self.reason = reason
        message = f"Failed to download {url} after {attempts} attempt(s)"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class FileAccessError(UpdateError):
    """A file the run depends on is missing or unreadable"""

    code = "file_not_found"


class MsiFileNotFoundError(FileAccessError):
    """MSI installer not present when its properties are queried"""


class PropertyMissingError(UpdateError):
    """MSI Property table has no row for the requested property"""

    code = "property_missing"

    def __init__(self, property_name: str, msi_path: str):
        self.property_name = property_name
        self.msi_path = msi_path
        super().__init__(f"Property '{property_name}' not found in {msi_path}")


class MsiQueryError(UpdateError):
    """MSI database could not be opened or queried"""

    code = "msi_query_failed"
