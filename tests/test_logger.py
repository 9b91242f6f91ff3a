from __future__ import annotations

import pytest

from pod_sync.utils import logger


@pytest.fixture(autouse=True)
def restore_level():
    saved = logger.LOG_LEVEL
    yield
    logger.LOG_LEVEL = saved


def test_level_filtering(capsys):
    logger.set_level("WARN")
    logger.info("hidden")
    logger.warn("shown")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "[WARN] shown" in out


def test_errors_go_to_stderr(capsys):
    logger.set_level("INFO")
    logger.error("boom")
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "[ERROR] boom" in captured.err


@pytest.mark.parametrize("name,expected", [
    ("warning", 30), ("DEBUG", 10), ("off", 100), ("nonsense", 20), (None, 20),
])
def test_level_names(name, expected):
    logger.set_level(name)
    assert logger.LOG_LEVEL == expected
    assert logger.enabled("ERROR") is (expected <= 40)
