from __future__ import annotations

import logging

from roundbook.utils.logger import ROOT_LOGGER_NAME, configure_logging, get_logger


def test_module_loggers_live_under_package_tree():
    assert get_logger("roundbook.services.round_service").name == "roundbook.services.round_service"
    assert get_logger("app").name == "roundbook.app"


def test_reconfiguring_changes_level_without_duplicate_handlers():
    root = configure_logging("DEBUG")
    handler_count = len(root.handlers)
    configure_logging("WARNING")
    assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == handler_count == 1
    assert root.level == logging.WARNING
    configure_logging("INFO")
