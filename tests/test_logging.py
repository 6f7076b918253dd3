import logging

import pytest

from georoute.infra.logging import get_logger, init_logging, log_banner


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        if h not in handlers:
            h.close()
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_stdout_only_by_default(restore_root, monkeypatch):
    monkeypatch.delenv("GEOROUTE_LOG_LEVEL", raising=False)
    assert init_logging("WARNING") is None
    assert restore_root.level == logging.WARNING
    assert len(restore_root.handlers) == 1


def test_env_overrides_level(restore_root, monkeypatch):
    monkeypatch.setenv("GEOROUTE_LOG_LEVEL", "debug")
    init_logging("ERROR")
    assert restore_root.level == logging.DEBUG


def test_per_run_file(restore_root, monkeypatch, tmp_path):
    monkeypatch.delenv("GEOROUTE_LOG_LEVEL", raising=False)
    path = init_logging("INFO", write_output=True, logs_dir=tmp_path)
    assert path is not None and path.parent == tmp_path.resolve()
    assert path.name.endswith(".log") and "__" in path.name

    log_banner(get_logger("georoute.test"), "batch start")
    for h in restore_root.handlers:
        h.flush()
    text = path.read_text(encoding="utf-8")
    assert "batch start" in text
    assert "[INFO][georoute.test]" in text


def test_noisy_loggers_quieted(restore_root, monkeypatch):
    monkeypatch.delenv("GEOROUTE_LOG_LEVEL", raising=False)
    init_logging("INFO")
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_default_logger_name():
    assert get_logger().name == "georoute"
