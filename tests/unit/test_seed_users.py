from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from scripts import seed_users
from user_store.domain.models import NewUser

SEED_COUNT = 50


def test_generate_users_is_deterministic() -> None:
    first = seed_users._generate_users(SEED_COUNT, seed=123)
    second = seed_users._generate_users(SEED_COUNT, seed=123)
    other = seed_users._generate_users(SEED_COUNT, seed=124)

    assert first == second
    assert first != other
    assert len(first) == SEED_COUNT
    assert all(isinstance(user, NewUser) for user in first)
    assert all(user.age is None or 18 <= user.age <= 90 for user in first)


def test_generate_users_zero_count() -> None:
    assert seed_users._generate_users(0, seed=1) == []


def test_seed_writes_json_without_loading(tmp_path: Path) -> None:
    output = tmp_path / "users.json"

    result = CliRunner().invoke(
        seed_users.app, ["--count", "5", "--seed", "7", "--output", str(output), "--no-load"]
    )

    assert result.exit_code == 0, result.output
    assert "Skipping load" in result.output
    records = json.loads(output.read_text(encoding="utf-8"))
    assert len(records) == 5
    assert set(records[0]) == {"fname", "lname", "age"}
