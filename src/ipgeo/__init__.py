"""
ipgeo - IP Geolocation Service

This package resolves an IP address into a single geolocation record by
combining an ASN database, a domestic region database and a global city
database.
"""

__version__ = "1.0.0"
__author__ = "ipgeo contributors"


# Lazy imports to avoid loading the database readers when not needed
def __getattr__(name):
    """Lazy loading of package components to avoid unnecessary imports."""
    if name == "Resolver":
        from .resolver import Resolver

        return Resolver
    elif name == "GeoSources":
        from .sources import GeoSources

        return GeoSources
    elif name == "UnifiedResult":
        from .models import UnifiedResult

        return UnifiedResult
    elif name == "AppSettings":
        from .config import AppSettings

        return AppSettings
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


# Define the public API of the package
__all__ = [
    "Resolver",
    "GeoSources",
    "UnifiedResult",
    "AppSettings",
    "__version__",
    "__author__",
]
