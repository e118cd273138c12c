import logging
from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from ipgeo.logging_config import (
    ColoredFormatter,
    IPMaskFilter,
    _resolve_level,
    daily_log_path,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg, *args):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_mask_ipv4():
    record = _record("client %s connected", "203.0.113.77")
    assert IPMaskFilter().filter(record)
    assert record.getMessage() == "client 203.0.113.x connected"


def test_mask_ipv6():
    record = _record("Resolving 2001:db8:85a3:8d3:1319:8a2e:370:7348")
    IPMaskFilter().filter(record)
    assert record.getMessage() == "Resolving 2001:db8:85a3:8d3::x"


@pytest.mark.parametrize(
    "address,masked",
    [
        ("2001:db8::1", "2001:db8::x"),
        ("fe80::1", "fe80::x"),
        ("::1", "::x"),
        ("2001:db8:1:2::abcd", "2001:db8:1:2::x"),
        ("fe80::1%eth0", "fe80::x"),
        ("::ffff:192.0.2.1", "::x"),
    ],
)
def test_mask_compressed_ipv6(address, masked):
    record = _record("Resolving %s.", address)
    IPMaskFilter().filter(record)
    assert record.getMessage() == f"Resolving {masked}."


def test_mask_ignores_non_addresses():
    record = _record("finished at 12:34:56 in module::helper")
    IPMaskFilter().filter(record)
    assert record.getMessage() == "finished at 12:34:56 in module::helper"


def test_mask_leaves_other_text_alone():
    record = _record("nothing to hide here")
    IPMaskFilter().filter(record)
    assert record.getMessage() == "nothing to hide here"


def test_resolve_level():
    assert _resolve_level("debug") == logging.DEBUG
    assert _resolve_level("nonsense") == logging.INFO


def test_daily_log_path():
    assert daily_log_path("logs", date(2024, 1, 31)) == Path("logs") / "2024-01-31.log"


def test_setup_logging_writes_daily_file(tmp_path):
    setup_logging("INFO", log_dir=tmp_path / "logs", use_color=False)
    logging.getLogger("ipgeo.test").info("hello file")

    log_file = daily_log_path(tmp_path / "logs")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello file" in log_file.read_text(encoding="utf-8")


def test_setup_logging_without_file(tmp_path):
    setup_logging("WARNING", log_dir=None, use_color=False)
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_masks_ips(tmp_path):
    setup_logging("INFO", log_dir=tmp_path, use_color=False, mask_ips=True)
    logging.getLogger("ipgeo.server").info("request from 198.51.100.23")
    for handler in logging.getLogger().handlers:
        handler.flush()
    content = daily_log_path(tmp_path).read_text(encoding="utf-8")
    assert "198.51.100.x" in content
    assert "198.51.100.23" not in content


def test_colored_formatter_does_not_mutate_record(monkeypatch):
    fake_sys = SimpleNamespace(stdout=SimpleNamespace(isatty=lambda: True))
    monkeypatch.setattr("ipgeo.logging_config.sys", fake_sys)
    record = _record("colourful")
    output = ColoredFormatter("%(levelname)s %(message)s").format(record)
    assert "\033[32m" in output
    assert record.levelname == "INFO"
