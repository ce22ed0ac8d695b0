from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from user_store import main as cli
from user_store.domain.models import User
from user_store.infrastructure.errors import PoolFatalError, StatementError

runner = CliRunner()


class _FakeRepository:
    calls: list[tuple[str, Any]] = []
    error: Exception | None = None

    def __init__(self, executor: object) -> None:
        del executor

    async def _record(self, name: str, value: Any, result: Any) -> Any:
        _FakeRepository.calls.append((name, value))
        if _FakeRepository.error is not None:
            raise _FakeRepository.error
        return result

    async def insert_one(self, record):
        return await self._record("insert_one", record, 7)

    async def insert_batch(self, records):
        return await self._record("insert_batch", list(records), [1, 2])

    async def select_all(self):
        user = User(
            id=1,
            fname="Ada",
            lname="Lovelace",
            age=None,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        return await self._record("select_all", None, [user])

    async def delete_by_id(self, user_id):
        return await self._record("delete_by_id", user_id, False)

    async def delete_by_first_name(self, fname):
        return await self._record("delete_by_first_name", fname, 2)

    async def delete_by_age_range(self, min_age, max_age):
        return await self._record("delete_by_age_range", (min_age, max_age), 3)

    async def delete_all(self):
        return await self._record("delete_all", None, 4)


@pytest.fixture(autouse=True)
def fake_database(monkeypatch):
    opened: list[object] = []

    @asynccontextmanager
    async def fake_open_database(settings=None, **kwargs):
        del settings, kwargs
        opened.append(object())
        yield opened[-1]

    _FakeRepository.calls = []
    _FakeRepository.error = None
    monkeypatch.setattr(cli, "open_database", fake_open_database)
    monkeypatch.setattr(cli, "UserRepository", _FakeRepository)
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
    return opened


def test_info_prints_connection_and_pool_settings(monkeypatch) -> None:
    monkeypatch.setenv("PGHOST", "db.example")

    result = runner.invoke(cli.app, ["info"])

    assert result.exit_code == 0
    assert "@db.example:" in result.output
    assert "pool max=" in result.output


def test_init_db_opens_database(fake_database) -> None:
    result = runner.invoke(cli.app, ["init-db"])

    assert result.exit_code == 0
    assert len(fake_database) == 1
    assert "initialized" in result.output


def test_add_inserts_one_user() -> None:
    result = runner.invoke(cli.app, ["add", "Ada", "Lovelace", "--age", "36"])

    assert result.exit_code == 0
    assert "Inserted user 7." in result.output
    assert _FakeRepository.calls == [
        ("insert_one", {"fname": "Ada", "lname": "Lovelace", "age": 36})
    ]


def test_add_many_reads_json_list(tmp_path: Path) -> None:
    path = tmp_path / "users.json"
    path.write_text(json.dumps([{"fname": "A", "lname": "B"}, {"fname": "C", "lname": "D"}]))

    result = runner.invoke(cli.app, ["add-many", str(path)])

    assert result.exit_code == 0
    assert "Inserted 2 users." in result.output
    assert _FakeRepository.calls[0][0] == "insert_batch"


def test_add_many_rejects_non_list(tmp_path: Path) -> None:
    path = tmp_path / "users.json"
    path.write_text(json.dumps({"fname": "A"}))

    result = runner.invoke(cli.app, ["add-many", str(path)])

    assert result.exit_code == 2
    assert _FakeRepository.calls == []


def test_add_many_rejects_malformed_json(tmp_path: Path) -> None:
    path = tmp_path / "users.json"
    path.write_text('[{"fname": "A",')

    result = runner.invoke(cli.app, ["add-many", str(path)])

    assert result.exit_code == 2
    assert _FakeRepository.calls == []


def test_list_as_json() -> None:
    result = runner.invoke(cli.app, ["list", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload[0]["fname"] == "Ada"
    assert payload[0]["age"] is None


@pytest.mark.parametrize(
    ("args", "expected_call", "expected_output"),
    [
        (["--id", "5"], ("delete_by_id", 5), "No user with id 5."),
        (["--fname", "Ada"], ("delete_by_first_name", "Ada"), "Deleted 2 user(s)."),
        (
            ["--min-age", "18", "--max-age", "30"],
            ("delete_by_age_range", (18, 30)),
            "Deleted 3 user(s).",
        ),
        (["--all"], ("delete_all", None), "Deleted 4 user(s)."),
    ],
)
def test_delete_dispatches_to_one_operation(args, expected_call, expected_output) -> None:
    result = runner.invoke(cli.app, ["delete", *args])

    assert result.exit_code == 0, result.output
    assert _FakeRepository.calls == [expected_call]
    assert expected_output in result.output


@pytest.mark.parametrize(
    "args",
    [[], ["--id", "1", "--all"], ["--min-age", "3"]],
)
def test_delete_requires_exactly_one_selector(args) -> None:
    result = runner.invoke(cli.app, ["delete", *args])

    assert result.exit_code == 2
    assert _FakeRepository.calls == []


def test_statement_errors_exit_with_failure_code() -> None:
    _FakeRepository.error = StatementError("delete all users", RuntimeError("boom"))

    result = runner.invoke(cli.app, ["delete", "--all"])

    assert result.exit_code == cli.EXIT_FAILURE
    assert "failed to delete all users" in result.output


def test_pool_fatal_error_exits_with_distinct_code() -> None:
    _FakeRepository.error = PoolFatalError("pool could not reconnect")

    result = runner.invoke(cli.app, ["list"])

    assert result.exit_code == cli.EXIT_POOL_FATAL
    assert "Fatal:" in result.output
