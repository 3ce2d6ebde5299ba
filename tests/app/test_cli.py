from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from accountsync.adapters.sqlalchemy.unit_of_work import shutdown
from accountsync.ui import cli
from tests.helpers.accounts import make_entry

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def reset_adapter() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


@pytest.fixture
def database_uri(tmp_path: Path) -> str:
    return f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"


def _write_batch(tmp_path: Path, entries: object) -> str:
    path = tmp_path / "batch.json"
    path.write_text(json.dumps(entries), encoding="utf-8")
    return str(path)


def test_reconcile_prints_summary(
    tmp_path: Path, database_uri: str, capsys: pytest.CaptureFixture[str]
) -> None:
    batch = _write_batch(tmp_path, [make_entry("0xb", gold=5), make_entry("0xa")])

    cli.main(["--database-uri", database_uri, "reconcile", batch])

    summary = json.loads(capsys.readouterr().out)
    assert summary == {
        "locked": 0,
        "marked_stale": 0,
        "inserted": ["0xa", "0xb"],
        "updated": [],
        "skipped": [],
    }


def test_show_prints_stored_account(
    tmp_path: Path, database_uri: str, capsys: pytest.CaptureFixture[str]
) -> None:
    batch = _write_batch(tmp_path, [make_entry("0xa", gold=10**30, account_type="group")])
    cli.main(["--database-uri", database_uri, "reconcile", batch])
    capsys.readouterr()

    cli.main(["--database-uri", database_uri, "show", "0xa"])

    account = json.loads(capsys.readouterr().out)
    assert account["gold"] == str(10**30)
    assert account["account_type"] == "group"
    assert account["is_deleted"] is False


def test_show_unknown_account_exits_with_error(database_uri: str) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["--database-uri", database_uri, "show", "0xmissing"])

    assert exc.value.code == 1


def test_invalid_entries_exit_with_usage_error(tmp_path: Path, database_uri: str) -> None:
    batch = _write_batch(tmp_path, [{"gold": 1}])

    with pytest.raises(SystemExit) as exc:
        cli.main(["--database-uri", database_uri, "reconcile", batch])

    assert exc.value.code == 2


def test_non_array_batch_is_rejected(tmp_path: Path, database_uri: str) -> None:
    batch = _write_batch(tmp_path, {"address": "0xa"})

    with pytest.raises(SystemExit) as exc:
        cli.main(["--database-uri", database_uri, "reconcile", batch])

    assert exc.value.code == 2
