"""
Resolution engine.

Queries the ASN, domestic and global databases for one address and merges
their answers into a single :class:`UnifiedResult`.

Which source wins is decided by source identity alone, through the
``PRECEDENCE`` table below:

* the ASN source supplies ASN and network fields;
* a domestic match is authoritative for location, and the global source may
  then only backfill coordinates, continent and timezone;
* without a domestic match the global source is authoritative for location.

Network fields are first-come: the first source that reports a network keeps
it, and the default network is used only when none did.
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Tuple

from . import constants
from .config import AppSettings
from .exceptions import InvalidIPError, SourceLookupError
from .models import (
    ASNInfo,
    ASNRecord,
    CityRecord,
    Continent,
    Coordinates,
    Country,
    IPAddress,
    IPNetwork,
    ISPInfo,
    Location,
    NetworkInfo,
    Region,
    RegionalRecord,
    SourceRecord,
    UnifiedResult,
)
from .network import calculate_range, default_network
from .regions import infer_carrier, localized_name, regions_from_city, regions_from_regional
from .sources import GeoSource, GeoSources

logger = logging.getLogger(__name__)


class Role(Enum):
    AUTHORITATIVE = "authoritative"
    BACKFILL = "backfill"


# source -> (role when the domestic source matched, role when it did not)
PRECEDENCE: Tuple[Tuple[str, Optional[Role], Optional[Role]], ...] = (
    ("asn", Role.AUTHORITATIVE, Role.AUTHORITATIVE),
    ("regional", Role.AUTHORITATIVE, None),
    ("city", Role.BACKFILL, Role.AUTHORITATIVE),
)

# Fields a non-authoritative source may fill when they are still empty
BACKFILL_FIELDS = frozenset({"coordinates", "continent", "timezone"})


def parse_ip(text: str) -> IPAddress:
    """
    Parse user-supplied text into an address.

    The text must be an address and nothing else: surrounding whitespace or a
    stray ``%`` is rejected. IPv4-mapped IPv6 addresses are unwrapped and a
    valid IPv6 zone id is dropped after parsing.

    Raises:
        InvalidIPError: the text is not an IP address.
    """
    if not isinstance(text, str):
        raise InvalidIPError(repr(text))
    try:
        ip = ipaddress.ip_address(text)
    except ValueError:
        raise InvalidIPError(text) from None
    if isinstance(ip, ipaddress.IPv6Address):
        if ip.ipv4_mapped is not None:
            return ip.ipv4_mapped
        if ip.scope_id:
            return ipaddress.IPv6Address(int(ip))
    return ip


def ip_version(ip: IPAddress) -> str:
    return "IPv4" if ip.version == 4 else "IPv6"


@dataclass
class Contribution:
    """What one source adds to a result, in the common shape."""

    asn_number: int = 0
    asn_name: str = ""
    asn_info: str = ""
    country: Optional[Country] = None
    continent: Optional[Continent] = None
    regions: Tuple[Region, ...] = ()
    coordinates: Optional[Coordinates] = None
    timezone: str = ""
    isp_name: str = ""
    isp_type: str = ""
    network: Optional[IPNetwork] = None
    network_type: str = ""


# The draft has the same fields; a result is built from it once all sources
# have been merged.
Draft = Contribution


def merge(draft: Draft, contribution: Contribution, role: Role) -> None:
    """
    Fold ``contribution`` into ``draft``.

    An authoritative source overwrites what earlier sources set; a backfill
    source fills BACKFILL_FIELDS only while they are empty. The network is
    never overwritten whatever the role.
    """
    for item in fields(Contribution):
        value = getattr(contribution, item.name)
        if not value:
            continue
        current = getattr(draft, item.name)
        if item.name == "network":
            if current is None:
                draft.network = value
            continue
        if role is Role.BACKFILL and (item.name not in BACKFILL_FIELDS or current):
            continue
        setattr(draft, item.name, value)


def is_domestic_match(record: Optional[RegionalRecord]) -> bool:
    """
    Whether a domestic record is usable at all.

    Sparse default entries exist in the database; a record counts only when it
    carries a country signal (any region segment) or an ISP.
    """
    return record is not None and (record.has_region or bool(record.isp))


class Resolver:
    """Resolve addresses against an opened set of geo databases."""

    def __init__(self, sources: GeoSources, settings: AppSettings | None = None):
        self.sources = sources
        self.settings = settings or AppSettings()
        self._contributors: Dict[type, Callable[[SourceRecord], Contribution]] = {
            ASNRecord: self._from_asn,
            RegionalRecord: self._from_regional,
            CityRecord: self._from_city,
        }

    def resolve(self, text: str) -> UnifiedResult:
        """
        Resolve ``text`` into a unified record.

        Source misses and source failures only leave fields empty.

        Raises:
            InvalidIPError: ``text`` is not an IP address.
        """
        ip = parse_ip(text)
        logger.info(f"Resolving {ip}")

        records: Dict[str, Optional[SourceRecord]] = {
            "asn": self._query(self.sources.asn, ip),
            "regional": self._query(self.sources.regional, ip),
        }
        domestic = is_domestic_match(records["regional"])
        logger.debug(f"Domestic match for {ip}: {domestic}")

        draft = Draft()
        for name, matched_role, unmatched_role in PRECEDENCE:
            role = matched_role if domestic else unmatched_role
            if role is None:
                continue
            if name not in records:
                records[name] = self._query(getattr(self.sources, name), ip)
            record = records[name]
            if record is not None:
                merge(draft, self.contribution(record), role)

        if draft.network is None:
            draft.network = default_network(ip)
            logger.debug(f"No source reported a network for {ip}, using {draft.network}")
        if not draft.network_type:
            draft.network_type = self.settings.DEFAULT_NETWORK_TYPE

        return self._build(ip, draft)

    def _query(self, source: GeoSource, ip: IPAddress) -> Optional[SourceRecord]:
        try:
            record = source.lookup(ip)
        except SourceLookupError as e:
            logger.warning(f"{source.name} lookup failed, treating as a miss: {e}")
            return None
        if record is None:
            logger.debug(f"{source.name}: no entry for {ip}")
        return record

    def contribution(self, record: SourceRecord) -> Contribution:
        """Map a source record onto the common shape."""
        return self._contributors[type(record)](record)

    def _from_asn(self, record: ASNRecord) -> Contribution:
        carrier = constants.ASN_CARRIERS.get(record.number or 0, "")
        return Contribution(
            asn_number=record.number or 0,
            asn_name=record.organization,
            asn_info=carrier,
            isp_name=record.organization,
            isp_type=carrier,
            network=record.network,
        )

    def _from_regional(self, record: RegionalRecord) -> Contribution:
        return Contribution(
            asn_info=record.isp,
            country=Country(constants.DOMESTIC_COUNTRY_CODE, constants.DOMESTIC_COUNTRY_NAME),
            regions=tuple(regions_from_regional(record)),
            timezone=constants.DOMESTIC_TIMEZONE,
            isp_name=record.isp,
            isp_type=infer_carrier(record.isp) or "",
            network=record.network,
            network_type=record.net_type,
        )

    def _from_city(self, record: CityRecord) -> Contribution:
        preferred = self.settings.PRIMARY_LANGUAGE
        fallback = self.settings.FALLBACK_LANGUAGE

        continent = None
        if record.continent_code:
            continent = Continent(
                record.continent_code,
                localized_name(record.continent_names, preferred, fallback) or "",
            )

        if record.is_anycast:
            # Announced from many places: only the registration is meaningful
            country = _country(
                record.registered_country_code,
                record.registered_country_names,
                preferred,
                fallback,
            )
            return Contribution(country=country, continent=continent, network=record.network)

        coordinates = None
        if record.latitude is not None and record.longitude is not None:
            coordinates = Coordinates(
                latitude=record.latitude,
                longitude=record.longitude,
                accuracy_radius=record.accuracy_radius or 0,
            )

        return Contribution(
            country=_country(record.country_code, record.country_names, preferred, fallback),
            continent=continent,
            regions=tuple(regions_from_city(record, preferred, fallback)),
            coordinates=coordinates,
            timezone=record.time_zone,
            network=record.network,
        )

    def _build(self, ip: IPAddress, draft: Draft) -> UnifiedResult:
        return UnifiedResult(
            ip=str(ip),
            version=ip_version(ip),
            asn=ASNInfo(number=draft.asn_number, name=draft.asn_name, info=draft.asn_info),
            network=NetworkInfo(range=calculate_range(draft.network), type=draft.network_type),
            location=Location(
                country=draft.country or Country(),
                continent=draft.continent or Continent(),
                regions=draft.regions,
                coordinates=draft.coordinates or Coordinates(),
                timezone=draft.timezone,
            ),
            isp=ISPInfo(name=draft.isp_name, type=draft.isp_type),
        )


def _country(
    code: str, names: Mapping[str, str] | None, preferred: str, fallback: str
) -> Optional[Country]:
    if not code:
        return None
    return Country(code, localized_name(names, preferred, fallback) or "")
