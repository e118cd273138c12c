"""
Administrative region normalization.

Turns the raw strings reported by a source into an ordered list of typed
regions, broad to narrow, without the country level.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .constants import (
    CARRIER_KEYWORDS,
    CITY_SUFFIX,
    CITY_SUFFIXES,
    DISTRICT_SUFFIX,
    DISTRICT_SUFFIXES,
    PROVINCE_NAMES,
)
from .models import CityRecord, Region, RegionalRecord, RegionType

_PROVINCE_FULL_NAMES = frozenset(PROVINCE_NAMES.values())

# (raw name, code, slot the source reported it in)
Segment = Tuple[str, str, RegionType]


def localized_name(
    names: Optional[Mapping[str, str]], preferred: str, fallback: str
) -> Optional[str]:
    """Pick ``preferred`` from a language-keyed mapping, else ``fallback``."""
    if not names:
        return None
    for language in (preferred, fallback):
        name = names.get(language)
        if name:
            return name
    return None


def classify(name: str, slot: RegionType) -> RegionType:
    """Infer the administrative level of ``name`` reported in ``slot``."""
    if name in _PROVINCE_FULL_NAMES:
        return RegionType.PROVINCE
    if name.endswith(CITY_SUFFIXES):
        # County-level cities are reported in the district slot
        return RegionType.DISTRICT if slot is RegionType.DISTRICT else RegionType.CITY
    if name.endswith(DISTRICT_SUFFIXES):
        return RegionType.DISTRICT
    if slot is RegionType.PROVINCE and name in PROVINCE_NAMES:
        return RegionType.PROVINCE
    return slot


def canonical_name(name: str, region_type: RegionType) -> str:
    """Add the administrative suffix a bare name is missing."""
    if region_type is RegionType.PROVINCE:
        return PROVINCE_NAMES.get(name, name)
    if region_type is RegionType.CITY:
        return name if name.endswith(CITY_SUFFIXES) else name + CITY_SUFFIX
    if name.endswith(DISTRICT_SUFFIXES + CITY_SUFFIXES):
        return name
    return name + DISTRICT_SUFFIX


def normalize_segments(segments: Iterable[Segment]) -> List[Region]:
    """
    Normalize slotted segments into typed regions.

    Empty segments are dropped and adjacent duplicates collapsed; the
    surviving entry keeps the more specific code.
    """
    regions: List[Region] = []
    for raw, code, slot in segments:
        raw = raw.strip()
        if not raw:
            continue
        region_type = classify(raw, slot)
        region = Region(name=canonical_name(raw, region_type), type=region_type, code=code)

        if regions and regions[-1].name == region.name:
            previous = regions[-1]
            regions[-1] = Region(
                name=previous.name, type=previous.type, code=region.code or previous.code
            )
            continue
        regions.append(region)
    return regions


def _code(value: int) -> str:
    return str(value) if value else ""


def regions_from_regional(record: RegionalRecord) -> List[Region]:
    return normalize_segments(
        [
            (record.province, _code(record.province_code), RegionType.PROVINCE),
            (record.city, _code(record.city_code), RegionType.CITY),
            (record.district, _code(record.district_code), RegionType.DISTRICT),
        ]
    )


def regions_from_city(record: CityRecord, preferred: str, fallback: str) -> List[Region]:
    """
    Regions of a localized-name source: the subdivision chain then the city.

    Only the first subdivision is known to be province level; deeper ones are
    left untyped. Entries without a name in either language are omitted.
    """
    regions: List[Region] = []
    for depth, subdivision in enumerate(record.subdivisions):
        name = localized_name(subdivision.names, preferred, fallback)
        if name is None:
            continue
        region_type = RegionType.PROVINCE if depth == 0 else None
        regions.append(Region(name=name, type=region_type, code=subdivision.iso_code or ""))

    city_name = localized_name(record.city_names, preferred, fallback)
    if city_name is not None:
        code = str(record.city_geoname_id) if record.city_geoname_id else ""
        regions.append(Region(name=city_name, type=RegionType.CITY, code=code))
    return regions


def infer_carrier(
    isp_name: str, keywords: Sequence[Tuple[str, str]] = CARRIER_KEYWORDS
) -> Optional[str]:
    """Carrier label for a domestic ISP name, e.g. "电信" -> "中国电信"."""
    if not isp_name:
        return None
    for keyword, carrier in keywords:
        if keyword in isp_name:
            return carrier
    return None
