"""
Digest scheduler and sender.

``DigestSender.run_once`` performs one pass:
1. Select eligible digests (unacknowledged, out of cooldown, attempts left)
2. Render and deliver each through the Notifier
3. Advance cooldown on success, count the attempt either way

``DigestScheduler`` repeats that pass on a fixed interval and survives
run failures with exponential backoff. No state is carried between runs:
whatever a run leaves behind is re-selected by the next one.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import structlog

from puretrack.config.settings import get_settings
from puretrack.digests.config import DigestConfig
from puretrack.digests.renderer import render_digest
from puretrack.digests.repository import DigestRepository
from puretrack.digests.schemas import DigestRecord
from puretrack.notifications.channels import Notifier
from puretrack.observability.logging import bind_context, clear_context
from puretrack.observability.metrics import MetricsCollector
from puretrack.retry import ExponentialBackoff

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DigestRunResult:
    """Summary of one scheduler run."""

    selected: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "selected": self.selected,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


class DigestSender:
    """
    Sends eligible digests and advances their retry/cooldown state.

    Each digest is handled as one step (send, then one conditional
    update), so an interrupted run leaves every record consistent.
    Delivery failures count against ``send_attempts`` exactly like
    successes and never abort the batch.

    Usage:
        sender = DigestSender(repository, notifier)
        result = await sender.run_once()
    """

    def __init__(
        self,
        repository: DigestRepository,
        notifier: Notifier,
        config: DigestConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._repo = repository
        self._notifier = notifier
        self._config = config or DigestConfig()
        self._clock = clock
        self._metrics = metrics

    async def run_once(self) -> DigestRunResult:
        """Process one page of eligible digests."""
        started = time.monotonic()
        result = DigestRunResult()

        digests = await self._repo.find_eligible(self._clock(), self._config.page_size)
        result.selected = len(digests)

        if not digests:
            logger.info("No eligible digests to send")
        else:
            logger.info("Eligible digests selected", count=len(digests))

            if self._config.send_concurrency <= 1:
                for digest in digests:
                    await self._process(digest, result)
            else:
                semaphore = asyncio.Semaphore(self._config.send_concurrency)

                async def bounded(digest: DigestRecord) -> None:
                    async with semaphore:
                        await self._process(digest, result)

                await asyncio.gather(*(bounded(d) for d in digests))

        result.elapsed_seconds = time.monotonic() - started
        if self._metrics is not None:
            self._metrics.record_run_duration(result.elapsed_seconds)

        logger.info(
            "Digest send cycle complete",
            selected=result.selected,
            sent=result.sent,
            failed=result.failed,
            skipped=result.skipped,
            elapsed=round(result.elapsed_seconds, 3),
        )
        return result

    async def _process(self, digest: DigestRecord, result: DigestRunResult) -> None:
        """Send one digest and record the outcome. Never raises."""
        log = logger.bind(digest_id=digest.digest_id)
        attempt = digest.send_attempts + 1

        try:
            rendered = render_digest(digest, self._config)
            await self._notifier.send(
                digest.recipient_email,
                rendered.subject,
                rendered.html_body,
                rendered.text_body,
            )
        except Exception as e:
            result.errors.append(f"{digest.digest_id}: {e}")
            log.error(
                "Failed to send digest",
                error=str(e),
                attempt=attempt,
                max_attempts=digest.max_attempts,
            )
            try:
                counted = await self._repo.record_failed_attempt(digest.digest_id)
            except Exception as update_error:
                log.error("Failed to record send attempt", error=str(update_error))
                counted = True

            if not counted:
                result.skipped += 1
                log.warning("Digest exhausted before bookkeeping, attempt not recorded")
                return

            result.failed += 1
            self._record("failed")
            return

        sent_at = self._clock()
        cooldown_until = sent_at + timedelta(hours=self._config.cooldown_hours)
        try:
            updated = await self._repo.record_sent(digest.digest_id, sent_at, cooldown_until)
        except Exception as e:
            # Delivered but not recorded; the next run may resend once
            result.errors.append(f"{digest.digest_id}: {e}")
            log.error("Digest sent but bookkeeping failed", error=str(e))
            updated = True

        if not updated:
            result.skipped += 1
            log.warning("Digest exhausted before bookkeeping, attempt not recorded")
            return

        result.sent += 1
        self._record("sent")
        log.info(
            "Digest sent",
            recipient=digest.recipient_email,
            attempt=attempt,
            max_attempts=digest.max_attempts,
            items=len(digest.items),
        )

    def _record(self, status: str) -> None:
        if self._metrics is not None:
            self._metrics.record_digest_send(status)


class DigestScheduler:
    """
    Runs ``DigestSender.run_once`` on a fixed interval.

    A failed run is retried with exponential backoff; after
    ``worker_max_consecutive_failures`` failures in a row the error is
    re-raised. ``stop()`` wakes the loop immediately.

    Usage:
        scheduler = DigestScheduler(sender)
        await scheduler.start()  # Runs until stopped
    """

    def __init__(
        self,
        sender: DigestSender,
        interval_hours: float | None = None,
    ) -> None:
        self._sender = sender
        self._interval = (interval_hours or DigestConfig().schedule_interval_hours) * 3600
        self._running = False
        self._stopped = asyncio.Event()
        self.runs = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    async def start(self) -> None:
        """Run until ``stop()`` is called or the task is cancelled."""
        self._running = True
        self._stopped.clear()
        settings = get_settings()
        backoff = ExponentialBackoff(
            base_delay=settings.worker_backoff_base_delay,
            max_delay=settings.worker_backoff_max_delay,
        )

        logger.info("Starting digest scheduler", interval_seconds=self._interval)

        while self._running:
            bind_context(digest_run=self.runs + 1)
            try:
                await self._sender.run_once()
                self.runs += 1
            except asyncio.CancelledError:
                logger.info("Digest scheduler cancelled")
                break
            except Exception as e:
                if backoff.attempt >= settings.worker_max_consecutive_failures:
                    logger.error(
                        "Digest scheduler exceeded max consecutive failures",
                        failures=backoff.attempt,
                        error=str(e),
                    )
                    raise
                delay = backoff.next_delay()
                logger.warning(
                    "Digest run failed, retrying",
                    error=str(e),
                    attempt=backoff.attempt,
                    retry_delay=round(delay, 1),
                )
                if await self._wait(delay):
                    break
                continue
            finally:
                clear_context()

            backoff.reset()
            if await self._wait(self._interval):
                break

        self._running = False
        logger.info("Digest scheduler stopped")

    async def stop(self) -> None:
        """Stop the scheduler after the current run."""
        logger.info("Stopping digest scheduler")
        self._running = False
        self._stopped.set()

    async def _wait(self, seconds: float) -> bool:
        """Sleep for ``seconds``; True if woken by ``stop()``."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
