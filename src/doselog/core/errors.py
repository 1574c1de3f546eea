"""Error taxonomy shared by the dose log core, connectors and tools."""

from __future__ import annotations


class DoseLogError(Exception):
    """Base class for every error that aborts a dose log command."""


class ConfigurationError(DoseLogError):
    """Raised for invalid command options: bad filter, unknown timezone, etc."""


class IdentityMissError(DoseLogError):
    """Raised when a remove or edit targets a dose that does not exist."""


class StoreError(DoseLogError):
    """Raised when the dose log cannot be retrieved or persisted."""
