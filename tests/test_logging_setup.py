import logging

from rich.logging import RichHandler

from trovind.logging_setup import configure_logging


def test_unknown_level_falls_back_to_info(restore_root_logger) -> None:
    assert configure_logging("chatty") == logging.INFO
    assert restore_root_logger.level == logging.INFO


def test_level_names_are_case_insensitive(restore_root_logger) -> None:
    assert configure_logging("debug") == logging.DEBUG


def test_http_clients_are_quieted(restore_root_logger) -> None:
    configure_logging("DEBUG")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_repeated_setup_installs_one_handler(restore_root_logger) -> None:
    configure_logging("INFO")
    configure_logging("WARNING")

    rich_handlers = [h for h in restore_root_logger.handlers if isinstance(h, RichHandler)]
    assert len(rich_handlers) == 1
    assert restore_root_logger.level == logging.WARNING
