import logging
import sys

from mcp_server_coralogix.mcp_tools_coralogix.core.diagnostics import (
    LOGGER_NAME,
    StderrHandler,
    configure_logging,
    get_logger,
)


def test_diagnostics_never_touch_stdout(capsys):
    # Even with a root handler on stdout, package records stay on stderr
    root_handler = logging.StreamHandler(sys.stdout)
    logging.getLogger().addHandler(root_handler)
    try:
        get_logger("test").warning("decode trouble")
    finally:
        logging.getLogger().removeHandler(root_handler)

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "decode trouble" in captured.err


def test_single_stderr_handler_however_often_it_is_requested():
    for _ in range(3):
        get_logger()
        get_logger("child")
    handlers = logging.getLogger(LOGGER_NAME).handlers
    assert sum(isinstance(h, StderrHandler) for h in handlers) == 1
    assert logging.getLogger(LOGGER_NAME).propagate is False


def test_children_share_the_package_logger():
    assert get_logger("ndjson").name == f"{LOGGER_NAME}.ndjson"
    assert get_logger().name == LOGGER_NAME


def test_configure_logging_sets_level(capsys):
    logger = get_logger()
    previous = logger.level
    try:
        configure_logging("warning")
        get_logger("x").info("quiet")
        configure_logging(logging.DEBUG)
        get_logger("x").debug("loud")
    finally:
        logger.setLevel(previous)

    err = capsys.readouterr().err
    assert "quiet" not in err
    assert "loud" in err
