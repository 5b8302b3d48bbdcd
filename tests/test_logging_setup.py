import logging
import logging.handlers
import sys

from context_monitor.logging_setup import PACKAGE_LOGGER, get_logger, setup_logging


def test_module_loggers_live_under_package_logger():
    assert get_logger('context_monitor.rules').name == 'context_monitor.rules'
    assert get_logger('cli').name == 'context_monitor.cli'
    assert get_logger().name == PACKAGE_LOGGER


def test_file_handler_is_rotating(tmp_path):
    log_file = tmp_path / 'logs' / 'context.log'
    logger = setup_logging(str(log_file), 'debug', max_log_size_mb=1, backup_count=2)

    try:
        get_logger('tests').info('hello')
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert not logger.propagate
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)
        assert 'hello' in log_file.read_text(encoding='utf-8')
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()


def test_console_goes_to_stderr_and_setup_replaces_handlers(tmp_path):
    setup_logging(str(tmp_path / 'first.log'))
    logger = setup_logging(None, 'warning')

    try:
        assert len(logger.handlers) == 1
        console = logger.handlers[0]
        assert isinstance(console, logging.StreamHandler)
        assert console.stream is sys.stderr
        assert console.level == logging.WARNING
    finally:
        logger.handlers.clear()
