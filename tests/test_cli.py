"""
Tests for the command-line entry point.
"""
import csv
import json

import pytest

from conftest import make_hand, make_user
from rakestats import cli


@pytest.fixture
def jsonl_env(tmp_path, monkeypatch):
    """Point the CLI at a JSONL store holding one June hand."""
    data = tmp_path / "data"
    data.mkdir()
    (data / "game_202506.jsonl").write_text(
        json.dumps(make_hand(users=[make_user(4883380, name="shark", bbamt=20, ramt=4)])) + "\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("RAKESTATS_STORE_BACKEND", "jsonl")
    monkeypatch.setenv("RAKESTATS_DATA_DIR", str(data))
    monkeypatch.setenv("RAKESTATS_OUTPUT_DIR", str(tmp_path))
    return tmp_path


def test_missing_arguments_exit_with_usage(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2
    assert "usage" in capsys.readouterr().err


def test_invalid_date_rejected(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["2025-13-01", "2025-06-30"])
    assert exc.value.code == 2


def test_invalid_user_id_rejected(capsys):
    with pytest.raises(SystemExit):
        cli.main(["2025-06-01", "2025-06-30", "abc"])
    assert "invalid user id" in capsys.readouterr().err


def test_run_prints_table_and_writes_csv(jsonl_env, capsys):
    out_csv = jsonl_env / "report.csv"
    code = cli.main(["2025-06-01", "2025-06-30", "4883380", "-o", str(out_csv)])
    assert code == 0

    out = capsys.readouterr().out
    assert "Fetching user statistics..." in out
    assert "4883380 | shark" in out
    assert f"Results exported to: {out_csv}" in out

    with open(out_csv, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[1][:7] == ["4883380", "shark", "NET1", "20", "0", "4", "1"]


def test_no_csv_flag(jsonl_env, capsys):
    assert cli.main(["2025-06-01", "2025-06-30", "4883380", "--no-csv"]) == 0
    assert not list(jsonl_env.glob("*.csv"))
    assert "Results exported" not in capsys.readouterr().out


def test_store_error_returns_exit_code_1(monkeypatch, capsys):
    monkeypatch.setenv("RAKESTATS_STORE_BACKEND", "postgres")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert cli.main(["2025-06-01", "2025-06-30", "1", "--no-csv"]) == 1


def test_bad_config_file_returns_exit_code_1(tmp_path):
    bad = tmp_path / "bad.yml"
    bad.write_text("store: [unclosed", encoding="utf-8")
    assert cli.main(["2025-06-01", "2025-06-30", "-c", str(bad)]) == 1
