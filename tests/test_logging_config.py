import logging

from backend.logging_config import setup_logging


def test_setup_logging_adds_one_handler(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    setup_logging("debug")
    setup_logging("debug")

    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG


def test_setup_logging_keeps_existing_handlers(monkeypatch):
    root = logging.getLogger()
    existing = logging.NullHandler()
    monkeypatch.setattr(root, "handlers", [existing])

    setup_logging()

    assert root.handlers == [existing]
