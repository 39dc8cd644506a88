"""
Tests for structlog-backed logging setup.
"""

import logging

import pytest
import structlog

from bridge_harness import logging_config
from bridge_harness.config import Settings
from bridge_harness.logging_config import bind_run_context, clear_run_context, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_json_output_by_default(capsys):
    setup_logging("warning", verbose=False)

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING

    logging.getLogger("bridge_harness.test").warning("route %s unavailable", "katana->okx")

    err = capsys.readouterr().err
    assert '"event": "route katana->okx unavailable"' in err
    assert '"level": "warning"' in err


def test_verbose_forces_debug():
    setup_logging("error", verbose=True)

    assert logging.getLogger().level == logging.DEBUG


def test_unknown_level_falls_back_to_info():
    setup_logging("chatty", verbose=False)

    assert logging.getLogger().level == logging.INFO


def test_wallet_key_is_redacted(capsys, monkeypatch):
    key = "0x" + "11" * 32
    monkeypatch.setattr(logging_config, "settings", Settings(_env_file=None, test_wallet_private_key=key))
    setup_logging("info", verbose=False)

    logging.getLogger("bridge_harness.test").error("signing failed for key %s", key)

    err = capsys.readouterr().err
    assert "11" * 32 not in err
    assert "0x<redacted>" in err


@pytest.mark.parametrize("verbose", [False, True])
def test_wallet_key_is_redacted_in_tracebacks(capsys, monkeypatch, verbose):
    key = "0x" + "22" * 32
    monkeypatch.setattr(logging_config, "settings", Settings(_env_file=None, test_wallet_private_key=key))
    setup_logging("info", verbose=verbose)

    try:
        raise ValueError(f"bad signer {key}")
    except ValueError:
        logging.getLogger("bridge_harness.test").exception("signing failed")

    err = capsys.readouterr().err
    assert "ValueError" in err
    assert "22" * 32 not in err
    assert "0x<redacted>" in err


def test_run_context_is_attached(capsys):
    setup_logging("info", verbose=False)

    bind_run_context(mode="dry_run", wallet="0xabc")
    try:
        logging.getLogger("bridge_harness.test").info("scenario started")
    finally:
        clear_run_context()

    err = capsys.readouterr().err
    assert '"mode": "dry_run"' in err
    assert '"wallet": "0xabc"' in err
