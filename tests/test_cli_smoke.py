import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from subscriptarr import config
from subscriptarr.env.paths import cache_file
from subscriptarr.main import build_parser, main

SRC = Path(__file__).resolve().parent.parent / "src"


def _run_module(*args):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "subscriptarr", *args],
        capture_output=True,
        text=True,
        env=env,
    )


def test_auth_help_runs():
    result = _run_module("auth", "--help")
    assert result.returncode == 0


def test_sync_help_runs():
    result = _run_module("sync", "--help")
    assert result.returncode == 0
    assert "--dry-run" in result.stdout


def test_parser_knows_every_command():
    parser = build_parser()
    for argv in (
        ["sync", "--limit", "5", "--dry-run", "--no-update"],
        ["quota", "status"],
        ["quota", "reset"],
        ["cache", "stats"],
        ["cache", "clear", "--prefix", "playlists"],
        ["auth"],
        ["env", "dump"],
        ["logs", "show", "--level", "warn"],
        ["help", "quota"],
    ):
        assert parser.parse_args(argv).command == argv[0]


def test_sync_flags_default_to_unset():
    args = build_parser().parse_args(["sync"])
    assert (args.limit, args.dry_run, args.update) == (None, None, None)

    args = build_parser().parse_args(["sync", "--no-update", "--dry-run"])
    assert (args.dry_run, args.update) == (True, False)


def test_sync_rejects_out_of_range_limit():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["sync", "--limit", "0"])


def test_quota_status_and_reset(capsys):
    assert main(["quota", "status"]) == 0
    assert "remaining" in capsys.readouterr().out

    assert main(["quota", "reset"]) == 0
    assert "Quota reset" in capsys.readouterr().out


def test_cache_commands(capsys):
    assert main(["cache", "stats"]) == 0
    assert "durable_size" in capsys.readouterr().out

    assert main(["cache", "clear", "--prefix", "playlists"]) == 0
    assert "cache:playlists" in capsys.readouterr().out


def test_env_dump(capsys):
    assert main(["env", "dump"]) == 0
    out = capsys.readouterr().out
    assert "Runtime Environment" in out
    assert "quota_limit" in out


def test_help_command(capsys):
    assert main(["help"]) == 0
    assert "sync" in capsys.readouterr().out


def test_logs_commands(capsys):
    storage_path = cache_file(config.STORAGE_FILENAME)
    storage_path.parent.mkdir(parents=True, exist_ok=True)
    storage_path.write_text(
        json.dumps(
            {
                "logs": [
                    {"message": "Added: v1", "level": "info", "timestamp": 1700000000},
                    {"message": "Channel C2 failed", "level": "error", "timestamp": 1700000060},
                ]
            }
        ),
        encoding="utf-8",
    )

    assert main(["logs", "show", "--level", "error"]) == 0
    out = capsys.readouterr().out
    assert "Channel C2 failed" in out
    assert "Added: v1" not in out

    assert main(["logs", "export"]) == 0
    assert "Added: v1" in capsys.readouterr().out

    assert main(["logs", "clear"]) == 0
    assert "logs" not in json.loads(storage_path.read_text(encoding="utf-8"))
