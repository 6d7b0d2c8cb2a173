"""Tests for the package logging setup."""

import logging

import pytest

from procmap.utils import logger as logger_module


@pytest.fixture
def package_logger(monkeypatch):
    log = logging.getLogger("procmap")
    monkeypatch.setattr(logger_module, "_initialized", False)
    monkeypatch.setattr(log, "handlers", [])
    monkeypatch.setattr(log, "level", log.level)
    return log


def test_installs_one_stdout_handler(package_logger):
    logger_module.get_logger("procmap.registry")
    logger_module.get_logger("procmap.mapping")

    (handler,) = package_logger.handlers
    assert isinstance(handler, logging.StreamHandler)


def test_keeps_host_configuration(package_logger):
    host_handler = logging.NullHandler()
    package_logger.addHandler(host_handler)
    package_logger.setLevel(logging.ERROR)

    log = logger_module.get_logger("procmap.services")

    assert package_logger.handlers == [host_handler]
    assert package_logger.level == logging.ERROR
    assert log.name == "procmap.services"
