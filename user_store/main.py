from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar

import typer

from user_store.config import get_settings
from user_store.infrastructure.db_factory import open_database
from user_store.infrastructure.errors import PoolFatalError, UserStoreError
from user_store.repositories.users import UserRepository
from user_store.utils.logging import configure_logging

app = typer.Typer(help="User store CLI (PostgreSQL, pooled connections).")

T = TypeVar("T")

EXIT_FAILURE = 1
EXIT_POOL_FATAL = 70


def _run(work: Callable[[UserRepository], Awaitable[T]]) -> T:
    """
    Open the database, bootstrap the schema, run one unit of work, and close.

    Library errors become a message on stderr and a non-zero exit code.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    async def _main() -> T:
        async with open_database(settings) as executor:
            return await work(UserRepository(executor))

    try:
        return asyncio.run(_main())
    except PoolFatalError as exc:
        typer.echo(f"Fatal: {exc}", err=True)
        raise typer.Exit(code=EXIT_POOL_FATAL) from exc
    except UserStoreError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAILURE) from exc


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool max={settings.pool_max_size} idle={settings.pool_max_idle_seconds:g}s "
        f"acquire_timeout={settings.pool_acquire_timeout_seconds:g}s "
        f"statement_timeout={settings.db_statement_timeout_ms}ms"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create the required tables if they do not exist.
    """

    async def work(repo: UserRepository) -> None:
        del repo

    _run(work)
    typer.echo("Database schema initialized.")


@app.command()
def add(
    fname: str = typer.Argument(..., help="First name."),
    lname: str = typer.Argument(..., help="Last name."),
    age: Optional[int] = typer.Option(None, "--age", "-a", help="Age in years."),
) -> None:
    """
    Insert one user and print its id.
    """
    user_id = _run(lambda repo: repo.insert_one({"fname": fname, "lname": lname, "age": age}))
    typer.echo(f"Inserted user {user_id}.")


@app.command("add-many")
def add_many(
    path: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="JSON file holding a list of users."
    ),
) -> None:
    """
    Insert every user in a JSON file inside one transaction (all or none).
    """
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"not valid JSON: {exc}", param_hint="PATH") from exc
    if not isinstance(records, list):
        raise typer.BadParameter("expected a JSON list of user objects", param_hint="PATH")
    ids = _run(lambda repo: repo.insert_batch(records))
    typer.echo(f"Inserted {len(ids)} users.")


@app.command("list")
def list_users(
    as_json: bool = typer.Option(False, "--json", help="Emit users as JSON."),
) -> None:
    """
    Print every user, ordered by id.
    """
    users = _run(lambda repo: repo.select_all())
    if as_json:
        typer.echo(json.dumps([user.model_dump(mode="json") for user in users], indent=2))
        return
    for user in users:
        age = "-" if user.age is None else str(user.age)
        typer.echo(f"{user.id}\t{user.fname}\t{user.lname}\t{age}\t{user.created_at.isoformat()}")
    typer.echo(f"{len(users)} user(s).")


@app.command()
def delete(
    user_id: Optional[int] = typer.Option(None, "--id", help="Delete the user with this id."),
    fname: Optional[str] = typer.Option(None, "--fname", help="Delete users with this first name."),
    min_age: Optional[int] = typer.Option(None, "--min-age", help="Lower bound (inclusive)."),
    max_age: Optional[int] = typer.Option(None, "--max-age", help="Upper bound (inclusive)."),
    delete_all: bool = typer.Option(False, "--all", help="Delete every user."),
) -> None:
    """
    Delete users by id, first name, age range, or all of them.
    """
    by_range = min_age is not None or max_age is not None
    chosen = sum([user_id is not None, fname is not None, by_range, delete_all])
    if chosen != 1:
        raise typer.BadParameter("choose exactly one of --id, --fname, --min-age/--max-age, --all")
    if by_range and (min_age is None or max_age is None):
        raise typer.BadParameter("--min-age and --max-age must be given together")

    if user_id is not None:
        found = _run(lambda repo: repo.delete_by_id(user_id))
        typer.echo(f"Deleted user {user_id}." if found else f"No user with id {user_id}.")
        return
    if fname is not None:
        count = _run(lambda repo: repo.delete_by_first_name(fname))
    elif by_range:
        count = _run(lambda repo: repo.delete_by_age_range(min_age, max_age))
    else:
        count = _run(lambda repo: repo.delete_all())
    typer.echo(f"Deleted {count} user(s).")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
