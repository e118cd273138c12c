"""Source records and the unified result.

Each geo database produces its own record variant; the resolver maps them
onto the common :class:`UnifiedResult` shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network
from typing import Any, Dict, Mapping, Optional, Tuple, Union

IPAddress = Union[IPv4Address, IPv6Address]
IPNetwork = Union[IPv4Network, IPv6Network]


class RegionType(str, Enum):
    PROVINCE = "province"
    CITY = "city"
    DISTRICT = "district"


# --- Source records ---------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ASNRecord:
    """Autonomous system that announces an address."""

    number: Optional[int] = None
    organization: str = ""
    network: Optional[IPNetwork] = None


@dataclass(frozen=True, slots=True)
class RegionalRecord:
    """Domestic database entry with distinct province/city/district slots.

    Codes are the database's numeric division codes; ``0`` means absent.
    """

    province: str = ""
    province_code: int = 0
    city: str = ""
    city_code: int = 0
    district: str = ""
    district_code: int = 0
    isp: str = ""
    net_type: str = ""
    network: Optional[IPNetwork] = None

    @property
    def has_region(self) -> bool:
        return bool(self.province or self.city or self.district)


@dataclass(frozen=True, slots=True)
class Subdivision:
    iso_code: str = ""
    names: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CityRecord:
    """Global city database entry; every name is a language-keyed mapping."""

    continent_code: str = ""
    continent_names: Mapping[str, str] = field(default_factory=dict)
    country_code: str = ""
    country_names: Mapping[str, str] = field(default_factory=dict)
    registered_country_code: str = ""
    registered_country_names: Mapping[str, str] = field(default_factory=dict)
    subdivisions: Tuple[Subdivision, ...] = ()
    city_names: Mapping[str, str] = field(default_factory=dict)
    city_geoname_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy_radius: Optional[int] = None
    time_zone: str = ""
    is_anycast: bool = False
    network: Optional[IPNetwork] = None


SourceRecord = Union[ASNRecord, RegionalRecord, CityRecord]


# --- Unified result ---------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Region:
    name: str
    type: Optional[RegionType] = None
    code: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "type": self.type.value if self.type else "",
        }


@dataclass(frozen=True, slots=True)
class Country:
    code: str = ""
    name: str = ""


@dataclass(frozen=True, slots=True)
class Continent:
    code: str = ""
    name: str = ""


@dataclass(frozen=True, slots=True)
class Coordinates:
    latitude: float = 0.0
    longitude: float = 0.0
    accuracy_radius: int = 0


@dataclass(frozen=True, slots=True)
class NetworkRange:
    """Address range covered by a network."""

    cidr: str
    start_ip: str
    end_ip: str
    total_ips: int
    saturated: bool = False


@dataclass(frozen=True, slots=True)
class ASNInfo:
    number: int = 0
    name: str = ""
    info: str = ""


@dataclass(frozen=True, slots=True)
class NetworkInfo:
    range: NetworkRange
    type: str = ""


@dataclass(frozen=True, slots=True)
class Location:
    country: Country = Country()
    continent: Continent = Continent()
    regions: Tuple[Region, ...] = ()
    coordinates: Coordinates = Coordinates()
    timezone: str = ""


@dataclass(frozen=True, slots=True)
class ISPInfo:
    name: str = ""
    type: str = ""


@dataclass(frozen=True, slots=True)
class UnifiedResult:
    """Everything known about one address, merged from all sources."""

    ip: str
    version: str
    asn: ASNInfo
    network: NetworkInfo
    location: Location
    isp: ISPInfo

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to the public JSON layout."""
        return {
            "ip": self.ip,
            "version": self.version,
            "asn": {
                "number": self.asn.number,
                "name": self.asn.name,
                "info": self.asn.info,
            },
            "network": {
                "cidr": self.network.range.cidr,
                "start_ip": self.network.range.start_ip,
                "end_ip": self.network.range.end_ip,
                "total_ips": self.network.range.total_ips,
                "type": self.network.type,
            },
            "location": {
                "country": {
                    "code": self.location.country.code,
                    "name": self.location.country.name,
                },
                "continent": {
                    "code": self.location.continent.code,
                    "name": self.location.continent.name,
                },
                "regions": [region.to_dict() for region in self.location.regions],
                "coordinates": {
                    "latitude": self.location.coordinates.latitude,
                    "longitude": self.location.coordinates.longitude,
                    "accuracy_radius": self.location.coordinates.accuracy_radius,
                },
                "timezone": self.location.timezone,
            },
            "isp": {
                "name": self.isp.name,
                "type": self.isp.type,
            },
        }
