import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from ipgeo.config import AppSettings  # noqa: E402
from ipgeo.sources import GeoSources  # noqa: E402


class StaticSource:
    """In-memory stand-in for a geo database adapter."""

    def __init__(self, name, records=None, error=None):
        self.name = name
        self.records = dict(records or {})
        self.error = error
        self.calls = []
        self.closed = False

    def lookup(self, ip):
        self.calls.append(str(ip))
        if self.error is not None:
            raise self.error
        return self.records.get(str(ip))

    def close(self):
        self.closed = True


@pytest.fixture
def make_sources():
    """Build a GeoSources bundle from per-source ``{ip: record}`` mappings."""

    def factory(asn=None, regional=None, city=None, errors=None):
        errors = errors or {}
        return GeoSources(
            asn=StaticSource("asn", asn, errors.get("asn")),
            regional=StaticSource("geocn", regional, errors.get("regional")),
            city=StaticSource("city", city, errors.get("city")),
        )

    return factory


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every database into a temporary directory."""
    return AppSettings(
        ASN_DB=str(tmp_path / "mmdb" / "GeoLite2-ASN.mmdb"),
        CITY_DB=str(tmp_path / "mmdb" / "GeoIP2-City.mmdb"),
        GEOCN_DB=str(tmp_path / "mmdb" / "GeoCN.mmdb"),
        DOWNLOAD_RETRY_DELAY=0.0,
        LOG_DIR=None,
    )
