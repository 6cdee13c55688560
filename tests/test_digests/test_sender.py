"""Tests for DigestSender and DigestScheduler."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from puretrack.digests.config import DigestConfig
from puretrack.digests.schemas import DigestRecord
from puretrack.digests.sender import DigestRunResult, DigestScheduler, DigestSender


def _seed(repo, make_item, now, recipient_id="user-1", email="operator@example.com", **overrides):
    record = DigestRecord.new(recipient_id, email, "ph_high", make_item(f"evt-{recipient_id}"), now)
    for key, value in overrides.items():
        setattr(record, key, value)
    repo.records[record.digest_id] = record
    return record


@pytest.fixture
def sender(digest_repo, notifier, digest_config, clock):
    return DigestSender(digest_repo, notifier, config=digest_config, clock=clock)


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_no_eligible_digests(self, sender, notifier):
        result = await sender.run_once()
        assert result.selected == 0
        assert result.sent == 0
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_successful_send_advances_cooldown(self, sender, digest_repo, notifier, make_item, now):
        record = _seed(digest_repo, make_item, now)

        result = await sender.run_once()

        assert result.sent == 1
        stored = digest_repo.records[record.digest_id]
        assert stored.send_attempts == 1
        assert stored.last_sent_at == now
        assert stored.cooldown_until == stored.last_sent_at + timedelta(hours=24)
        assert notifier.sent[0]["to"] == "operator@example.com"
        assert notifier.sent[0]["subject"] == "Alert Digest: PH HIGH (Attempt 1/3)"
        assert notifier.sent[0]["text"]

    @pytest.mark.asyncio
    async def test_not_resent_during_cooldown(self, sender, digest_repo, notifier, make_item, now, clock):
        _seed(digest_repo, make_item, now)
        await sender.run_once()

        clock.advance(hours=6)
        result = await sender.run_once()

        assert result.selected == 0
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_resent_after_cooldown(self, sender, digest_repo, notifier, make_item, now, clock):
        record = _seed(digest_repo, make_item, now)
        await sender.run_once()

        clock.advance(hours=24)
        await sender.run_once()

        assert len(notifier.sent) == 2
        assert notifier.sent[1]["subject"].endswith("(Attempt 2/3)")
        assert digest_repo.records[record.digest_id].send_attempts == 2

    @pytest.mark.asyncio
    async def test_failure_counts_attempt_and_continues(
        self, sender, digest_repo, notifier, make_item, now,
    ):
        bad = _seed(digest_repo, make_item, now, recipient_id="user-bad", email="bad@example.com")
        good = _seed(digest_repo, make_item, now, recipient_id="user-good", email="good@example.com")
        notifier.fail_for = {"bad@example.com"}

        result = await sender.run_once()

        assert result.selected == 2
        assert result.sent == 1
        assert result.failed == 1
        assert any(bad.digest_id in e for e in result.errors)

        bad_stored = digest_repo.records[bad.digest_id]
        assert bad_stored.send_attempts == 1
        assert bad_stored.last_sent_at is None
        # Failed digest stays eligible; no cooldown was applied
        assert bad_stored.cooldown_until == now

        good_stored = digest_repo.records[good.digest_id]
        assert good_stored.send_attempts == 1
        assert good_stored.last_sent_at == now

    @pytest.mark.asyncio
    async def test_permanent_failure_stops_after_max_attempts(
        self, sender, digest_repo, notifier, make_item, now,
    ):
        record = _seed(digest_repo, make_item, now)
        notifier.fail_for = {"operator@example.com"}

        for _ in range(5):
            await sender.run_once()

        assert digest_repo.records[record.digest_id].send_attempts == 3

    @pytest.mark.asyncio
    async def test_exhausted_digest_never_selected(self, sender, digest_repo, notifier, make_item, now):
        _seed(digest_repo, make_item, now, send_attempts=3)

        result = await sender.run_once()

        assert result.selected == 0
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_acknowledged_digest_never_selected(self, sender, digest_repo, notifier, make_item, now):
        _seed(digest_repo, make_item, now, is_acknowledged=True)

        result = await sender.run_once()

        assert result.selected == 0

    @pytest.mark.asyncio
    async def test_page_size_bounds_run(self, digest_repo, notifier, clock, make_item, now):
        for i in range(5):
            _seed(digest_repo, make_item, now - timedelta(minutes=i), recipient_id=f"user-{i}",
                  cooldown_until=now - timedelta(minutes=i))
        config = DigestConfig(page_size=2)
        sender = DigestSender(digest_repo, notifier, config=config, clock=clock)

        first = await sender.run_once()

        assert first.selected == 2
        # Longest-waiting first
        attempts = {r.recipient_id: r.send_attempts for r in digest_repo.records.values()}
        assert attempts == {"user-0": 0, "user-1": 0, "user-2": 0, "user-3": 1, "user-4": 1}

        second = await sender.run_once()

        assert second.sent == 2
        attempts = {r.recipient_id: r.send_attempts for r in digest_repo.records.values()}
        assert attempts == {"user-0": 0, "user-1": 1, "user-2": 1, "user-3": 1, "user-4": 1}

    @pytest.mark.asyncio
    async def test_exhausted_between_select_and_bookkeeping_is_skipped(
        self, sender, digest_repo, notifier, make_item, now,
    ):
        ok = _seed(digest_repo, make_item, now, recipient_id="user-ok", email="ok@example.com")
        bad = _seed(digest_repo, make_item, now, recipient_id="user-bad", email="bad@example.com")
        notifier.fail_for = {"bad@example.com"}
        original_find = digest_repo.find_eligible

        async def find_then_exhaust(now, limit=50):
            selected = await original_find(now, limit)
            for record in digest_repo.records.values():
                record.send_attempts = record.max_attempts
            return selected

        digest_repo.find_eligible = find_then_exhaust

        result = await sender.run_once()

        assert result.selected == 2
        assert result.skipped == 2
        assert result.sent == 0
        assert result.failed == 0
        assert digest_repo.records[ok.digest_id].send_attempts == 3
        assert digest_repo.records[bad.digest_id].send_attempts == 3

    @pytest.mark.asyncio
    async def test_bookkeeping_error_does_not_abort_run(
        self, sender, digest_repo, notifier, make_item, now,
    ):
        _seed(digest_repo, make_item, now, recipient_id="user-a", email="a@example.com")
        _seed(digest_repo, make_item, now, recipient_id="user-b", email="b@example.com")
        digest_repo.record_sent = AsyncMock(side_effect=[ConnectionError("db gone"), True])

        result = await sender.run_once()

        assert len(notifier.sent) == 2
        assert result.sent == 2
        assert len(result.errors) == 1

    @pytest.mark.asyncio
    async def test_concurrent_sends(self, digest_repo, notifier, clock, make_item, now):
        for i in range(4):
            _seed(digest_repo, make_item, now, recipient_id=f"user-{i}", email=f"u{i}@example.com")
        sender = DigestSender(
            digest_repo, notifier, config=DigestConfig(send_concurrency=3), clock=clock,
        )

        result = await sender.run_once()

        assert result.sent == 4
        assert {m["to"] for m in notifier.sent} == {f"u{i}@example.com" for i in range(4)}

    @pytest.mark.asyncio
    async def test_records_metrics(self, digest_repo, notifier, digest_config, clock, make_item, now):
        metrics = MagicMock()
        _seed(digest_repo, make_item, now)
        sender = DigestSender(digest_repo, notifier, config=digest_config, clock=clock, metrics=metrics)

        await sender.run_once()

        metrics.record_digest_send.assert_called_once_with("sent")
        metrics.record_run_duration.assert_called_once()


class TestDigestRunResult:
    def test_to_dict(self):
        result = DigestRunResult(selected=2, sent=1, failed=1, errors=["x"], elapsed_seconds=0.12345)
        assert result.to_dict() == {
            "selected": 2,
            "sent": 1,
            "failed": 1,
            "skipped": 0,
            "errors": ["x"],
            "elapsed_seconds": 0.123,
        }


class TestDigestScheduler:
    def test_default_interval_is_six_hours(self):
        scheduler = DigestScheduler(MagicMock())
        assert scheduler.interval_seconds == 6 * 3600

    @pytest.mark.asyncio
    async def test_stop_wakes_sleeping_loop(self):
        sender = MagicMock()
        sender.run_once = AsyncMock(return_value=DigestRunResult())
        scheduler = DigestScheduler(sender, interval_hours=1)

        task = asyncio.create_task(scheduler.start())
        await asyncio.sleep(0.01)
        await scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

        assert scheduler.runs == 1
        sender.run_once.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_run_is_retried(self, monkeypatch):
        monkeypatch.setenv("WORKER_BACKOFF_BASE_DELAY", "0.1")
        from puretrack.config.settings import get_settings
        get_settings.cache_clear()

        sender = MagicMock()
        sender.run_once = AsyncMock(side_effect=[RuntimeError("db down"), DigestRunResult()])
        scheduler = DigestScheduler(sender, interval_hours=1)

        task = asyncio.create_task(scheduler.start())
        for _ in range(100):
            if scheduler.runs:
                break
            await asyncio.sleep(0.02)
        await scheduler.stop()
        await asyncio.wait_for(task, timeout=1)
        get_settings.cache_clear()

        assert sender.run_once.await_count == 2
        assert scheduler.runs == 1

    @pytest.mark.asyncio
    async def test_run_number_bound_to_logs_then_cleared(self):
        import structlog

        seen = []

        async def run_once():
            seen.append(structlog.contextvars.get_contextvars().get("digest_run"))
            return DigestRunResult()

        sender = MagicMock()
        sender.run_once = run_once
        scheduler = DigestScheduler(sender, interval_hours=1)

        task = asyncio.create_task(scheduler.start())
        await asyncio.sleep(0.01)
        await scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

        assert seen == [1]
        assert "digest_run" not in structlog.contextvars.get_contextvars()
