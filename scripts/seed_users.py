"""
Seeding script for the user store.

Implements deterministic pseudo-random user generation and loads the users
through the transactional batch insert, so a seed run either lands in full
or not at all.
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
import time
from pathlib import Path

import typer

from user_store.config import get_settings
from user_store.domain.models import NewUser
from user_store.infrastructure.db_factory import open_database
from user_store.infrastructure.errors import UserStoreError
from user_store.repositories.users import UserRepository
from user_store.utils.logging import configure_logging

app = typer.Typer(help="Generate sample users and insert them into Postgres in one transaction.")

FIRST_NAMES = ["Alice", "Bob", "Charlie", "David", "Erin", "Frank", "Grace", "Heidi"]
LAST_NAMES = ["Smith", "Johnson", "Brown", "Garcia", "Miller", "Davis", "Wilson", "Lopez"]


def _generate_users(count: int, seed: int, missing_age_ratio: float = 0.1) -> list[NewUser]:
    rng = random.Random(seed)
    users: list[NewUser] = []
    for _ in range(count):
        age = None if rng.random() < missing_age_ratio else rng.randint(18, 90)
        users.append(
            NewUser(fname=rng.choice(FIRST_NAMES), lname=rng.choice(LAST_NAMES), age=age)
        )
    return users


async def _insert_users(users: list[NewUser], dsn: str | None) -> list[int]:
    async with open_database(dsn_override=dsn) as executor:
        return await UserRepository(executor).insert_batch(users)


@app.command()
def main(
    count: int = typer.Option(
        10,
        "--count",
        "-n",
        min=0,
        help="Number of users to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional JSON output path (usable with `user-store add-many`).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate users; skip inserting them.",
    ),
) -> None:
    """
    Generate sample users and optionally insert them in a single transaction.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    users = _generate_users(count, seed)
    typer.echo(f"Generated {len(users)} users (seed={seed}).")

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            json.dumps([user.model_dump() for user in users], indent=2), encoding="utf-8"
        )
        typer.echo(f"Wrote {output}")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    start = time.perf_counter()
    try:
        ids = asyncio.run(_insert_users(users, dsn))
    except UserStoreError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Inserted {len(ids)} users in {time.perf_counter() - start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
