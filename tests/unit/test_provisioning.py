from dataclasses import replace
from pathlib import Path

import httpx
import pytest
import respx

from ipgeo import constants
from ipgeo.exceptions import ProvisioningError
from ipgeo.provisioning import DatabaseProvisioner, ensure_databases

URLS = {
    "asn": constants.ASN_DB_URL,
    "city": constants.CITY_DB_URL,
    "geocn": constants.GEOCN_DB_URL,
}


@pytest.fixture
def delays():
    return []


@pytest.fixture
def provisioner(settings, delays):
    async def fake_sleep(delay):
        delays.append(delay)

    return DatabaseProvisioner(replace(settings, DOWNLOAD_RETRY_DELAY=1.0), sleep=fake_sleep)


def _mock_all(router, content=b"mmdb", **statuses):
    return {
        name: router.get(url).mock(
            side_effect=lambda request, status=statuses.get(name, 200): httpx.Response(
                status, content=content
            )
        )
        for name, url in URLS.items()
    }


def test_files_map_paths_to_urls(provisioner, settings):
    assert provisioner.files == {
        Path(settings.ASN_DB): constants.ASN_DB_URL,
        Path(settings.CITY_DB): constants.CITY_DB_URL,
        Path(settings.GEOCN_DB): constants.GEOCN_DB_URL,
    }


@pytest.mark.asyncio
async def test_downloads_missing_databases(provisioner, settings):
    with respx.mock(assert_all_called=False) as router:
        routes = _mock_all(router, content=b"database bytes")
        downloaded = await provisioner.ensure()

    assert sorted(downloaded) == sorted(Path(p) for p in settings.database_paths.values())
    for path in settings.database_paths.values():
        assert Path(path).read_bytes() == b"database bytes"
        assert not Path(path + ".tmp").exists()
    assert all(route.call_count == 1 for route in routes.values())


@pytest.mark.asyncio
async def test_present_databases_are_skipped(provisioner, settings):
    for path in settings.database_paths.values():
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(b"existing")

    with respx.mock(assert_all_called=False) as router:
        routes = _mock_all(router)
        assert await provisioner.ensure() == []

    assert not any(route.called for route in routes.values())
    assert provisioner.missing() == []


@pytest.mark.asyncio
async def test_force_downloads_everything(provisioner, settings):
    asn_path = Path(settings.ASN_DB)
    asn_path.parent.mkdir(parents=True, exist_ok=True)
    asn_path.write_bytes(b"old")

    with respx.mock(assert_all_called=False) as router:
        _mock_all(router, content=b"new")
        downloaded = await provisioner.ensure(force=True)

    assert len(downloaded) == 3
    assert asn_path.read_bytes() == b"new"


@pytest.mark.asyncio
async def test_retry_then_success(provisioner, settings, delays):
    Path(settings.ASN_DB).parent.mkdir(parents=True, exist_ok=True)

    with respx.mock(assert_all_called=False) as router:
        route = router.get(constants.ASN_DB_URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.ConnectError("refused"),
                httpx.Response(200, content=b"asn"),
            ]
        )
        async with httpx.AsyncClient() as client:
            url, target = constants.ASN_DB_URL, Path(settings.ASN_DB)
            await provisioner.download_with_retry(client, url, target)

    assert route.call_count == 3
    assert delays == [2.0, 3.0]
    assert Path(settings.ASN_DB).read_bytes() == b"asn"


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(provisioner, settings, delays):
    target = Path(settings.CITY_DB)
    target.parent.mkdir(parents=True, exist_ok=True)

    with respx.mock(assert_all_called=False) as router:
        route = router.get(constants.CITY_DB_URL).mock(side_effect=lambda request: httpx.Response(404))
        async with httpx.AsyncClient() as client:
            with pytest.raises(ProvisioningError) as excinfo:
                await provisioner.download_with_retry(client, constants.CITY_DB_URL, target)

    assert route.call_count == 3
    assert "HTTP 404" in excinfo.value.reason
    assert excinfo.value.path == str(target)
    assert not target.exists()
    assert not target.with_name(target.name + ".tmp").exists()


@pytest.mark.asyncio
async def test_ensure_raises_when_any_download_fails(provisioner, settings):
    with respx.mock(assert_all_called=False) as router:
        _mock_all(router, geocn=500)
        with pytest.raises(ProvisioningError) as excinfo:
            await provisioner.ensure()

    assert excinfo.value.path == settings.GEOCN_DB
    # The other downloads still completed
    assert Path(settings.ASN_DB).exists()
    assert not Path(settings.GEOCN_DB).exists()


@pytest.mark.asyncio
async def test_ensure_databases_entry_point(settings):
    with respx.mock(assert_all_called=False) as router:
        _mock_all(router)
        downloaded = await ensure_databases(settings)
    assert len(downloaded) == 3


def test_verify_databases(provisioner, settings):
    assert not provisioner.verify_databases()

    for path in settings.database_paths.values():
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(b"data")
    assert provisioner.verify_databases()

    Path(settings.CITY_DB).write_bytes(b"")
    assert not provisioner.verify_databases()
