import logging
import sys

import pytest


@pytest.fixture(autouse=True)
def clean_env_and_modules(monkeypatch, tmp_path):
    """
    Ensure tests don't leak env, logger state, or on-disk state into the project.
    """

    keys = [
        "SUBSCRIPTARR_LOGS_DIR",
        "SUBSCRIPTARR_AUTH_DIR",
        "SUBSCRIPTARR_CACHE_DIR",
        "SUBSCRIPTARR_COMMAND",
        "SUBSCRIPTARR_RUN_ID",
        "SUBSCRIPTARR_VERBOSE",
        "SUBSCRIPTARR_QUIET",
        "SUBSCRIPTARR_UI",
        "SUBSCRIPTARR_LIMIT",
        "SUBSCRIPTARR_UPDATE",
        "SUBSCRIPTARR_DRY_RUN",
        "SUBSCRIPTARR_AGGREGATE_TITLE",
        "SUBSCRIPTARR_QUOTA_LIMIT",
        "SUBSCRIPTARR_QUOTA_RESET_HOUR",
        "SUBSCRIPTARR_MAX_CONCURRENT",
        "SUBSCRIPTARR_MIN_DELAY_SEC",
        "SUBSCRIPTARR_CACHE_TTL_SEC",
        "SUBSCRIPTARR_MAX_ATTEMPTS",
        "SUBSCRIPTARR_BASE_DELAY_SEC",
        "SUBSCRIPTARR_MAX_DELAY_SEC",
        "SUBSCRIPTARR_REQUEST_TIMEOUT",
        "LOG_LEVEL",
        "LOG_RETENTION",
    ]
    for k in keys:
        monkeypatch.delenv(k, raising=False)

    # Keep every run-time artifact inside the test's tmp dir
    monkeypatch.setenv("SUBSCRIPTARR_LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("SUBSCRIPTARR_AUTH_DIR", str(tmp_path / "auth"))
    monkeypatch.setenv("SUBSCRIPTARR_CACHE_DIR", str(tmp_path / "cache"))

    # Ensure UI events never print in tests
    monkeypatch.setenv("SUBSCRIPTARR_UI", "0")

    from subscriptarr.env import reset_env_caches

    reset_env_caches()

    # Reset logger global state
    import subscriptarr.logger.state

    subscriptarr.logger.state.INITIALIZED = False
    subscriptarr.logger.state.LOG_DIR = None
    subscriptarr.logger.state.LOG_FILE_PATH = None

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    # Force re-import of logger modules so the console binds to the current stdout
    for mod in [
        "subscriptarr.logger",
        "subscriptarr.logger.state",
        "subscriptarr.logger.file",
        "subscriptarr.logger.console",
        "subscriptarr.logger.retention",
    ]:
        sys.modules.pop(mod, None)

    yield

    reset_env_caches()
