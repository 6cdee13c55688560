"""
Command-line interface for puretrack.

Provides commands to initialize the database, run the acknowledgement
API, send digests once or on a schedule, and push a reading through the
alert pipeline.

Usage:
    puretrack init-db        # Initialize database
    puretrack serve          # Run the acknowledgement API
    puretrack send-digests   # One scheduler run
    puretrack scheduler      # Periodic digest scheduler
    puretrack ingest ...     # Evaluate one sensor snapshot
    puretrack thresholds ... # Show or store threshold configuration
    puretrack health         # Check service health
"""

import asyncio
import json
import signal
import sys
from datetime import datetime, timezone

import click

from puretrack.config.settings import get_settings
from puretrack.observability.logging import setup_logging
from puretrack.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """PureTrack - water-quality alert digests."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from puretrack.alerts.devices import DeviceRepository
    from puretrack.alerts.repository import AlertRepository
    from puretrack.digests.repository import DigestRepository
    from puretrack.readings.repository import ReadingRepository
    from puretrack.recipients.repository import PreferenceRepository
    from puretrack.storage.database import Database
    from puretrack.thresholds.repository import ThresholdRepository

    async def run():
        db = Database()
        await db.connect()

        try:
            for repo in (
                ReadingRepository(db),
                ThresholdRepository(db),
                DeviceRepository(db),
                AlertRepository(db),
                PreferenceRepository(db),
                DigestRepository(db),
            ):
                await repo.create_tables()
        finally:
            await db.close()

        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=8000, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int) -> None:
    """Start the acknowledgement API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    # Start metrics server on separate port
    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "puretrack.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


def _build_sender(db):
    """Wire a DigestSender over ``db`` with the configured notifier."""
    from puretrack.digests.config import DigestConfig
    from puretrack.digests.repository import DigestRepository
    from puretrack.digests.sender import DigestSender
    from puretrack.notifications.channels import build_notifier

    return DigestSender(
        repository=DigestRepository(db),
        notifier=build_notifier(),
        config=DigestConfig(),
        metrics=get_metrics(),
    )


@main.command("send-digests")
def send_digests() -> None:
    """Send eligible digests once and print the run summary."""
    from puretrack.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            result = await _build_sender(db).run_once()
        finally:
            await db.close()

        click.echo("\nDigest Run Results:")
        click.echo("-" * 40)
        click.echo(f"  Selected: {result.selected}")
        click.echo(f"  Sent:     {result.sent}")
        click.echo(f"  Failed:   {result.failed}")
        click.echo(f"  Skipped:  {result.skipped}")
        click.echo(f"  Elapsed:  {result.elapsed_seconds:.2f}s")
        for error in result.errors:
            click.echo(click.style(f"  ✗ {error}", fg="red"))
        click.echo("-" * 40)

    asyncio.run(run())


@main.command()
@click.option("--interval-hours", default=None, type=float, help="Hours between runs")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option("--metrics-port", default=8001, help="Metrics server port")
def scheduler(interval_hours: float | None, metrics: bool, metrics_port: int) -> None:
    """Run the digest scheduler until interrupted."""
    from puretrack.digests.sender import DigestScheduler
    from puretrack.storage.database import Database

    async def run():
        if metrics:
            get_metrics().start_server(port=metrics_port)

        db = Database()
        await db.connect()
        digest_scheduler = DigestScheduler(_build_sender(db), interval_hours=interval_hours)

        # Handle shutdown signals
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig, lambda: asyncio.create_task(digest_scheduler.stop()),
            )

        try:
            await digest_scheduler.start()
        finally:
            await db.close()

    asyncio.run(run())


@main.command()
@click.option("--device", "device_id", required=True, help="Device identifier")
@click.option("--ph", type=float, default=None, help="pH value")
@click.option("--tds", type=float, default=None, help="TDS value (ppm)")
@click.option("--turbidity", type=float, default=None, help="Turbidity value (NTU)")
@click.option(
    "--at",
    "observed_at",
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]),
    default=None,
    help="Observation time in UTC (default: now)",
)
def ingest(
    device_id: str,
    ph: float | None,
    tds: float | None,
    turbidity: float | None,
    observed_at: datetime | None,
) -> None:
    """Evaluate one sensor snapshot and aggregate any alerts."""
    from puretrack.alerts.repository import AlertRepository
    from puretrack.alerts.service import AlertService
    from puretrack.digests.aggregator import DigestAggregator
    from puretrack.digests.repository import DigestRepository
    from puretrack.readings.repository import ReadingRepository
    from puretrack.readings.schemas import SensorSnapshot
    from puretrack.recipients.repository import PreferenceRepository
    from puretrack.storage.database import Database
    from puretrack.thresholds.repository import ThresholdRepository

    if ph is None and tds is None and turbidity is None:
        raise click.UsageError("Provide at least one of --ph, --tds, --turbidity")

    when = (observed_at or datetime.now(timezone.utc)).replace(tzinfo=timezone.utc)
    snapshot = SensorSnapshot(
        device_id=device_id,
        observed_at=when,
        tds=tds,
        ph=ph,
        turbidity=turbidity,
    )

    async def run():
        db = Database()
        await db.connect()
        metrics = get_metrics()
        try:
            service = AlertService(
                readings=ReadingRepository(db),
                thresholds=ThresholdRepository(db),
                alerts=AlertRepository(db),
                preferences=PreferenceRepository(db),
                aggregator=DigestAggregator(DigestRepository(db), metrics=metrics),
                metrics=metrics,
            )
            result = await service.process_snapshot(snapshot)
        finally:
            await db.close()

        click.echo(json.dumps(result.to_dict(), indent=2))

    asyncio.run(run())


@main.group()
def thresholds() -> None:
    """Threshold configuration commands."""


@thresholds.command("show")
def thresholds_show() -> None:
    """Print the active threshold configuration as JSON.

    Falls back to the built-in defaults when nothing is stored.

    Example:
        puretrack thresholds show
    """
    from puretrack.storage.database import Database
    from puretrack.thresholds.repository import ThresholdRepository

    async def run():
        db = Database()
        await db.connect()
        try:
            config = await ThresholdRepository(db).get_config()
        finally:
            await db.close()

        click.echo(json.dumps(config.model_dump(by_alias=True), indent=2))

    asyncio.run(run())


@thresholds.command("set")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def thresholds_set(path: str) -> None:
    """Validate a threshold document from PATH and store it.

    Example:
        puretrack thresholds set thresholds.json
    """
    from pydantic import ValidationError

    from puretrack.storage.database import Database
    from puretrack.thresholds.config import ThresholdConfig
    from puretrack.thresholds.repository import ThresholdRepository

    with open(path, encoding="utf-8") as f:
        try:
            config = ThresholdConfig.model_validate(json.load(f))
        except (json.JSONDecodeError, ValidationError) as e:
            raise click.BadParameter(str(e), param_hint="PATH") from e

    async def run():
        db = Database()
        await db.connect()
        try:
            await ThresholdRepository(db).save_config(config)
        finally:
            await db.close()

        click.echo("Threshold configuration saved")

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}

        # Check PostgreSQL
        try:
            from puretrack.storage.database import Database
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        # Check notifier configuration
        try:
            from puretrack.notifications.channels import build_notifier
            results[f"notifier ({build_notifier().name})"] = True
        except ValueError as e:
            results["notifier"] = False
            logger.error("Notifier misconfigured", error=str(e))

        # Print results
        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if not status:
                all_healthy = False

        click.echo("-" * 40)

        if all_healthy:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
