from __future__ import annotations

import asyncio
import json
import sys
from typing import Optional

import typer

from cache_bench.benchmark.driver import BenchmarkConfig
from cache_bench.config import get_settings
from cache_bench.errors import AdapterUnavailableError, BenchmarkPhaseError, DuplicateKeyError
from cache_bench.infrastructure.db_factory import build_dsn, ensure_schema
from cache_bench.orchestrator import json_safe, open_service, run_benchmark
from cache_bench.reporter import print_failure, print_records, print_report
from cache_bench.utils.logging import configure_logging

app = typer.Typer(help="PostgreSQL vs Redis cache-aside benchmark CLI.")
users_app = typer.Typer(help="Cache-aside user operations.")
app.add_typer(users_app, name="users")


def _setup_logging(json_logs: Optional[bool] = None) -> None:
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_logs=settings.log_json if json_logs is None else json_logs,
    )


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    dsn = build_dsn(settings).replace(f":{settings.db_password}@", ":***@")
    typer.echo(
        f"DB={dsn} | REDIS={settings.redis_url} | ttl={settings.cache_ttl_seconds}s | "
        f"records={settings.benchmark_records} operations={settings.benchmark_operations} "
        f"batch={settings.benchmark_batch_size} warm={settings.benchmark_warm_size or 'all'}"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create the users table if it does not exist.
    """
    _setup_logging()
    ensure_schema()
    typer.echo("Database initialized.")


@app.command()
def run(
    records: Optional[int] = typer.Option(
        None, "--records", "-n", help="Users to create (default from settings)."
    ),
    operations: Optional[int] = typer.Option(
        None, "--operations", "-m", help="Timed reads per tier (default from settings)."
    ),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", "-b", help="Max concurrent operations during setup/cleanup."
    ),
    warm_size: Optional[int] = typer.Option(
        None, "--warm-size", help="How many created users to load into Redis (default: all)."
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="RNG seed for id selection."),
    persist: bool = typer.Option(True, "--persist/--no-persist", help="Write results JSON."),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    json_logs: Optional[bool] = typer.Option(None, "--json-logs/--text-logs"),
) -> None:
    """
    Run the benchmark, print the comparison and persist the report.
    """
    _setup_logging(json_logs)
    config = BenchmarkConfig.from_settings(
        records=records,
        operations=operations,
        batch_size=batch_size,
        warm_size=warm_size,
        seed=seed,
    )
    typer.echo(
        f"Running benchmark: records={config.records} operations={config.operations} "
        f"batch={config.batch_size} warm={config.warm_size or 'all'}"
    )
    try:
        report = run_benchmark(config, persist=persist)
    except BenchmarkPhaseError as exc:
        print_failure(exc)
        raise typer.Exit(code=1) from exc

    if json_output:
        payload = json_safe(report.to_dict(include_samples=False))
        typer.echo(json.dumps(payload, indent=2, allow_nan=False))
    else:
        print_report(report)


@users_app.command("list")
def list_users() -> None:
    """List all users (served from the users:all cache entry when present)."""
    _setup_logging()

    async def _list():
        async with open_service() as service:
            return await service.get_all()

    print_records(asyncio.run(_list()))


@users_app.command("get")
def get_user(user_id: int = typer.Argument(..., help="User id.")) -> None:
    _setup_logging()

    async def _get():
        async with open_service() as service:
            return await service.get_by_id(user_id)

    record = asyncio.run(_get())
    if record is None:
        typer.echo(f"User {user_id} not found.", err=True)
        raise typer.Exit(code=1)
    typer.echo(record.model_dump_json(indent=2))


@users_app.command("create")
def create_user(
    name: str = typer.Option(..., "--name", help="Display name."),
    email: str = typer.Option(..., "--email", help="Unique email."),
) -> None:
    _setup_logging()

    async def _create():
        async with open_service() as service:
            return await service.create(name, email)

    try:
        record = asyncio.run(_create())
    except DuplicateKeyError as exc:
        typer.echo("Email already exists.", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(record.model_dump_json(indent=2))


@users_app.command("delete")
def delete_user(user_id: int = typer.Argument(..., help="User id.")) -> None:
    _setup_logging()

    async def _delete():
        async with open_service() as service:
            return await service.delete(user_id)

    if not asyncio.run(_delete()):
        typer.echo(f"User {user_id} not found.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"User {user_id} deleted.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
    except AdapterUnavailableError as exc:
        typer.echo(f"Backend unavailable: {exc.message} {exc.details}", err=True)
        sys.exit(2)


if __name__ == "__main__":
    main()
