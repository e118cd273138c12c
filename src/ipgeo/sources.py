"""Geo database adapters.

Each adapter wraps one MaxMind-format database and answers ``lookup(ip)``
with its own record variant, or ``None`` when the address is not covered.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Mapping, Optional, TypeVar

import geoip2.database
import geoip2.errors
import maxminddb

from .config import AppSettings
from .exceptions import SourceInitError, SourceLookupError
from .models import ASNRecord, CityRecord, IPAddress, RegionalRecord, Subdivision
from .network import network_for

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")

# Raised by the readers for a damaged file or a database of the wrong kind
_READER_ERRORS = (maxminddb.InvalidDatabaseError, TypeError, ValueError, OSError)


class GeoSource(ABC, Generic[RecordT]):
    """Read-only lookup over one opened database."""

    name = "source"

    def __init__(self, reader: Any, path: str = ""):
        self._reader = reader
        self.path = path

    @classmethod
    @abstractmethod
    def open(cls, path: str) -> "GeoSource[RecordT]":
        """Open the database at ``path``; raises SourceInitError."""

    @abstractmethod
    def _lookup(self, ip: IPAddress) -> Optional[RecordT]:
        """Reader-specific lookup; may raise the reader's own errors."""

    def lookup(self, ip: IPAddress) -> Optional[RecordT]:
        """
        Look up an address.

        Returns:
            The source's record, or None when the address is not covered.

        Raises:
            SourceLookupError: the database could not be read.
        """
        try:
            return self._lookup(ip)
        except geoip2.errors.AddressNotFoundError:
            return None
        except _READER_ERRORS as e:
            raise SourceLookupError(self.name, f"lookup of {ip} failed: {e}") from e

    def close(self) -> None:
        self._reader.close()


def _open_geoip2(name: str, path: str) -> geoip2.database.Reader:
    logger.debug(f"Opening {name} database: {path}")
    try:
        return geoip2.database.Reader(path)
    except _READER_ERRORS as e:
        raise SourceInitError(name, f"cannot open {path}: {e}") from e


class ASNSource(GeoSource[ASNRecord]):
    """GeoLite2-ASN database."""

    name = "asn"

    @classmethod
    def open(cls, path: str) -> "ASNSource":
        return cls(_open_geoip2(cls.name, path), path)

    def _lookup(self, ip: IPAddress) -> Optional[ASNRecord]:
        response = self._reader.asn(str(ip))
        return ASNRecord(
            number=response.autonomous_system_number,
            organization=response.autonomous_system_organization or "",
            network=response.network,
        )


class RegionalSource(GeoSource[RegionalRecord]):
    """GeoCN database: Chinese administrative divisions and ISP.

    Its record layout is not one of the geoip2 models, so it is read through
    the raw maxminddb reader.
    """

    name = "geocn"

    @classmethod
    def open(cls, path: str) -> "RegionalSource":
        logger.debug(f"Opening {cls.name} database: {path}")
        try:
            reader = maxminddb.open_database(path)
        except _READER_ERRORS as e:
            raise SourceInitError(cls.name, f"cannot open {path}: {e}") from e
        return cls(reader, path)

    def _lookup(self, ip: IPAddress) -> Optional[RegionalRecord]:
        data, prefix_len = self._reader.get_with_prefix_len(str(ip))
        if data is None:
            return None
        if not isinstance(data, Mapping):
            raise ValueError(f"unexpected record type {type(data).__name__}")

        network = None
        if 0 <= prefix_len <= ip.max_prefixlen:
            network = network_for(ip, prefix_len)

        return RegionalRecord(
            province=_text(data.get("province")),
            province_code=_int(data.get("provinceCode")),
            city=_text(data.get("city")),
            city_code=_int(data.get("cityCode")),
            district=_text(data.get("districts")),
            district_code=_int(data.get("districtsCode")),
            isp=_text(data.get("isp")),
            net_type=_text(data.get("net")),
            network=network,
        )


class CitySource(GeoSource[CityRecord]):
    """GeoIP2/GeoLite2-City database."""

    name = "city"

    @classmethod
    def open(cls, path: str) -> "CitySource":
        return cls(_open_geoip2(cls.name, path), path)

    def _lookup(self, ip: IPAddress) -> Optional[CityRecord]:
        response = self._reader.city(str(ip))
        location = response.location
        traits = response.traits
        return CityRecord(
            continent_code=response.continent.code or "",
            continent_names=dict(response.continent.names or {}),
            country_code=response.country.iso_code or "",
            country_names=dict(response.country.names or {}),
            registered_country_code=response.registered_country.iso_code or "",
            registered_country_names=dict(response.registered_country.names or {}),
            subdivisions=tuple(
                Subdivision(iso_code=sub.iso_code or "", names=dict(sub.names or {}))
                for sub in response.subdivisions
            ),
            city_names=dict(response.city.names or {}),
            city_geoname_id=response.city.geoname_id,
            latitude=location.latitude,
            longitude=location.longitude,
            accuracy_radius=location.accuracy_radius,
            time_zone=location.time_zone or "",
            is_anycast=bool(getattr(traits, "is_anycast", False)),
            network=traits.network,
        )


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class GeoSources:
    """The three opened databases, owned as one resource.

    Use as a context manager (or call :meth:`close`) so every reader is
    released at shutdown.
    """

    def __init__(self, asn: GeoSource, regional: GeoSource, city: GeoSource):
        self.asn = asn
        self.regional = regional
        self.city = city

    @classmethod
    def open(cls, settings: AppSettings | None = None) -> "GeoSources":
        """Open every configured database; fails if any one is unusable."""
        settings = settings or AppSettings()
        logger.info("Opening geo databases")

        opened: Dict[str, GeoSource] = {}
        try:
            opened["asn"] = ASNSource.open(settings.ASN_DB)
            opened["city"] = CitySource.open(settings.CITY_DB)
            opened["regional"] = RegionalSource.open(settings.GEOCN_DB)
        except SourceInitError:
            for source in opened.values():
                source.close()
            raise

        logger.info("Geo databases opened")
        return cls(**opened)

    def __iter__(self):
        return iter((self.asn, self.regional, self.city))

    def close(self) -> None:
        logger.info("Closing geo databases")
        for source in self:
            try:
                source.close()
            except Exception as e:
                logger.error(f"Failed to close {source.name} database: {e}")

    def __enter__(self) -> "GeoSources":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

