"""Tests for AcknowledgementHandler."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from puretrack.digests.acknowledgement import AcknowledgementHandler
from puretrack.digests.aggregator import DigestAggregator
from puretrack.digests.errors import (
    AcknowledgementError,
    DigestNotFoundError,
    InvalidArgumentError,
    PermissionDeniedError,
)
from puretrack.digests.schemas import DigestRecord, generate_ack_token
from puretrack.recipients.schemas import NotificationPreference


@pytest.fixture
def record(digest_repo, make_item, now):
    record = DigestRecord.new("user-1", "operator@example.com", "ph_high", make_item(), now)
    digest_repo.records[record.digest_id] = record
    return record


@pytest.fixture
def handler(digest_repo, clock):
    return AcknowledgementHandler(digest_repo, clock=clock)


class TestAcknowledge:
    @pytest.mark.asyncio
    async def test_valid_token_acknowledges(self, handler, digest_repo, record, now):
        result = await handler.acknowledge(record.digest_id, record.ack_token)

        assert result.digest_id == record.digest_id
        assert not result.already_acknowledged
        stored = digest_repo.records[record.digest_id]
        assert stored.is_acknowledged
        assert stored.acknowledged_at == now

    @pytest.mark.asyncio
    async def test_second_call_is_idempotent(self, handler, digest_repo, record, clock):
        await handler.acknowledge(record.digest_id, record.ack_token)
        first_at = digest_repo.records[record.digest_id].acknowledged_at
        version = digest_repo.records[record.digest_id].version

        clock.advance(hours=1)
        result = await handler.acknowledge(record.digest_id, record.ack_token)

        assert result.already_acknowledged
        stored = digest_repo.records[record.digest_id]
        assert stored.is_acknowledged
        assert stored.acknowledged_at == first_at
        assert stored.version == version

    @pytest.mark.asyncio
    async def test_acknowledged_digest_leaves_eligibility(self, handler, digest_repo, record, now):
        await handler.acknowledge(record.digest_id, record.ack_token)
        assert await digest_repo.find_eligible(now + timedelta(days=2)) == []

    @pytest.mark.asyncio
    async def test_malformed_token(self, handler, record):
        with pytest.raises(InvalidArgumentError):
            await handler.acknowledge(record.digest_id, "not-a-token")

    @pytest.mark.asyncio
    async def test_malformed_digest_id(self, handler):
        with pytest.raises(InvalidArgumentError):
            await handler.acknowledge("no-date-here", generate_ack_token())

    @pytest.mark.asyncio
    async def test_format_checked_before_lookup(self, digest_repo, clock):
        digest_repo.get = MagicMock(side_effect=AssertionError("store touched"))
        handler = AcknowledgementHandler(digest_repo, clock=clock)
        with pytest.raises(InvalidArgumentError):
            await handler.acknowledge("user-1_ph_high_2026-10-17", "short")

    @pytest.mark.asyncio
    async def test_missing_digest(self, handler):
        with pytest.raises(DigestNotFoundError):
            await handler.acknowledge("user-9_ph_high_2026-10-17", generate_ack_token())

    @pytest.mark.asyncio
    async def test_wrong_token(self, handler, digest_repo, record):
        with pytest.raises(PermissionDeniedError):
            await handler.acknowledge(record.digest_id, generate_ack_token())
        assert not digest_repo.records[record.digest_id].is_acknowledged

    @pytest.mark.asyncio
    async def test_wrong_token_rejected_even_after_ack(self, handler, record):
        await handler.acknowledge(record.digest_id, record.ack_token)
        with pytest.raises(PermissionDeniedError):
            await handler.acknowledge(record.digest_id, generate_ack_token())

    @pytest.mark.asyncio
    async def test_lost_race_reports_already_acknowledged(self, handler, digest_repo, record):
        original_get = digest_repo.get

        async def stale_get(digest_id):
            snapshot = await original_get(digest_id)
            # A concurrent request acknowledges right after our read
            digest_repo.records[digest_id].is_acknowledged = True
            return snapshot

        digest_repo.get = stale_get

        result = await handler.acknowledge(record.digest_id, record.ack_token)

        assert result.already_acknowledged

    @pytest.mark.asyncio
    async def test_records_outcome_metrics(self, digest_repo, clock, record):
        metrics = MagicMock()
        handler = AcknowledgementHandler(digest_repo, clock=clock, metrics=metrics)

        await handler.acknowledge(record.digest_id, record.ack_token)
        with pytest.raises(PermissionDeniedError):
            await handler.acknowledge(record.digest_id, generate_ack_token())

        outcomes = [c.args[0] for c in metrics.record_acknowledgement.call_args_list]
        assert outcomes == ["acknowledged", "permission_denied"]


class TestAggregatedDigests:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "user_id",
        ["auth0|5f7c1a", "user:42", "ops+alerts@example.com", "u" * 201],
    )
    async def test_opaque_recipient_ids_can_acknowledge(
        self, digest_repo, digest_config, clock, make_item, user_id,
    ):
        recipient = NotificationPreference(
            user_id=user_id,
            email="operator@example.com",
            severities=frozenset({"Critical"}),
        )
        aggregator = DigestAggregator(digest_repo, config=digest_config, clock=clock)
        await aggregator.aggregate(recipient, "ph_high", make_item())
        (record,) = digest_repo.records.values()

        handler = AcknowledgementHandler(digest_repo, clock=clock)
        result = await handler.acknowledge(record.digest_id, record.ack_token)

        assert result.already_acknowledged is False
        assert digest_repo.records[record.digest_id].is_acknowledged


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error_cls, code",
        [
            (InvalidArgumentError, "invalid_argument"),
            (DigestNotFoundError, "not_found"),
            (PermissionDeniedError, "permission_denied"),
        ],
    )
    def test_codes_and_fixed_messages(self, error_cls, code):
        error = error_cls()
        assert isinstance(error, AcknowledgementError)
        assert error.code == code
        assert str(error) == error_cls.message
