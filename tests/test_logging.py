import logging

from code_insight.logging import logger, resolve_level, setup_logging


def test_resolve_level_accepts_names_case_insensitively():
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" Warning ") == logging.WARNING
    assert resolve_level(None) == logging.INFO


def test_resolve_level_falls_back_to_info_for_unknown_names():
    assert resolve_level("chatty") == logging.INFO


def test_setup_logging_is_configured_once():
    # A second call must not reconfigure handlers or switch to a file.
    again = setup_logging("ignored.log", "DEBUG")

    assert again is not None
    assert hasattr(logger, "info")
