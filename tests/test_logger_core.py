import logging


def test_logger_creates_module_log(tmp_path, monkeypatch):
    monkeypatch.setenv("SUBSCRIPTARR_LOGS_DIR", str(tmp_path))
    monkeypatch.setenv("SUBSCRIPTARR_COMMAND", "auth")
    monkeypatch.setenv("SUBSCRIPTARR_RUN_ID", "run1")

    from subscriptarr.logger import get_logger, init_logging

    init_logging()
    get_logger("test").info("hello")

    logs = list(tmp_path.rglob("*.log"))
    assert len(logs) == 1
    assert logs[0].name == "auth-run1.log"
    assert "auth" in logs[0].parts


def test_logger_initializes(monkeypatch):
    monkeypatch.setenv("SUBSCRIPTARR_VERBOSE", "1")

    from subscriptarr.logger import get_logger, init_logging

    init_logging(module="test")
    log = get_logger("test")

    assert isinstance(log, logging.Logger)
    assert logging.getLogger().level == logging.DEBUG


def test_logger_console_output(capsys, monkeypatch):
    monkeypatch.setenv("SUBSCRIPTARR_VERBOSE", "1")

    from subscriptarr.logger import get_logger, init_logging

    init_logging(module="test")
    get_logger("test").info("hello")

    out = capsys.readouterr()

    # RichHandler writes to stdout
    assert "hello" in out.out


def test_quiet_drops_console_handler(monkeypatch):
    monkeypatch.setenv("SUBSCRIPTARR_QUIET", "1")

    from subscriptarr.logger import init_logging

    init_logging(module="test")

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.FileHandler)


def test_reinit_does_not_stack_handlers():
    from subscriptarr.logger import init_logging

    init_logging(module="one")
    init_logging(module="two")

    file_handlers = [
        h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)
    ]
    assert len(file_handlers) == 1
    assert "two" in file_handlers[0].baseFilename
