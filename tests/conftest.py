import pytest

from pos_terminal import config


@pytest.fixture(autouse=True)
def debug_log(tmp_path, monkeypatch):
    """Keep diagnostic lines out of the shared /tmp log."""
    path = tmp_path / "debug.log"
    monkeypatch.setattr(config, "DEBUG_LOG_PATH", str(path))
    return path
