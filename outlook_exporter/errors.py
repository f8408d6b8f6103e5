from __future__ import annotations


class ExporterError(Exception):
    """Base class for every failure raised by the exporter."""


class ConnectionFailure(ExporterError):
    """Outlook could not be reached at all. Fatal for the invocation."""


class AccountFailure(ExporterError):
    """One account's folder could not be resolved or opened."""

    def __init__(self, account: str, message: str):
        super().__init__(f"{account}: {message}")
        self.account = account


class ItemFailure(ExporterError):
    """One item could not be read."""

    def __init__(self, index: int, cause: Exception):
        super().__init__(f"item {index}: {cause}")
        self.index = index
        self.cause = cause


class ExportFailure(ExporterError):
    """A requested output target could not be written."""

    def __init__(self, target: str, cause: Exception):
        super().__init__(f"{target}: {cause}")
        self.target = target
        self.cause = cause
