"""Exception hierarchy shared by the resolver, the sources and the CLI."""

from __future__ import annotations


class IPGeoError(Exception):
    """Base exception for ipgeo errors"""


class InvalidIPError(IPGeoError, ValueError):
    """Raised when the text handed to the resolver is not an IP address"""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid IP address: {value!r}")


class ConfigError(IPGeoError):
    """Raised when a configuration file exists but cannot be used"""


class SourceError(IPGeoError):
    """Base class for geo database failures"""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class SourceInitError(SourceError):
    """A database could not be opened; the process cannot serve without it"""


class SourceLookupError(SourceError):
    """A lookup failed for a reason other than the address being absent"""


class ProvisioningError(IPGeoError):
    """A required database file is missing and could not be downloaded"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to provision {path}: {reason}")
