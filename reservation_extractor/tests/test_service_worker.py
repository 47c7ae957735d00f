"""Tests for reservation_extractor.service and reservation_extractor.worker modules.

Tests:
- submit_document() / get_result() lifecycle
- run() turning unexpected errors into retryable failures
- ExtractionWorkerPool retry policy and concurrency
"""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock, patch

from reservation_extractor.core.config import PipelineSettings
from reservation_extractor.pydantic_models import RunState, RunStatus
from reservation_extractor.service import ExtractionService
from reservation_extractor.worker import ExtractionJob, ExtractionWorkerPool


EMAIL = "Olá Camila, a sua reserva de 1 a 5 de março está confirmada. Total: 450 €"

RESERVATION = json.dumps({"reservations": [{
    "guestName": "Camila Souza",
    "checkInDate": "2025-03-01",
    "checkOutDate": "2025-03-05",
    "numGuests": 2,
    "totalAmount": 450,
    "platform": "direct",
}]})


@pytest.fixture
def mock_acompletion(completion_response):
    with patch("reservation_extractor.providers.base.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = completion_response(RESERVATION)
        yield mock


# =============================================================================
# ExtractionService
# =============================================================================


class TestSubmitAndResult:
    def test_submit_returns_pending_result(self, service):
        run_id = service.submit_document(EMAIL, "text/plain", "Reserva Sete Rios.txt")
        result = service.get_result(run_id)
        assert result.status == RunStatus.PENDING
        assert result.state_history == [RunState.RECEIVED]
        assert result.attempts == 0

    def test_run_ids_are_unique(self, service):
        assert service.submit_document(EMAIL, "txt") != service.submit_document(EMAIL, "txt")

    def test_unsupported_kind(self, service):
        with pytest.raises(ValueError):
            service.submit_document(b"\x89PNG", "image/png")

    def test_unknown_run_id(self, service):
        with pytest.raises(KeyError):
            service.get_result("missing")

    @pytest.mark.asyncio
    async def test_run_stores_terminal_result(self, service, mock_acompletion):
        run_id = service.submit_document(EMAIL, "text/plain", "Reserva Sete Rios.txt")
        result = await service.run(run_id)

        assert result.status == RunStatus.ACCEPTED
        assert result.attempts == 1
        assert service.get_result(run_id) == result

    @pytest.mark.asyncio
    async def test_attempts_counted_across_runs(self, service, mock_acompletion, status_error):
        mock_acompletion.side_effect = status_error("Service unavailable", 503)
        run_id = service.submit_document(EMAIL, "text/plain")
        await service.run(run_id)
        service.mark_retrying(run_id)
        assert service.get_result(run_id).status == RunStatus.PENDING

        result = await service.run(run_id)
        assert result.attempts == 2
        assert result.status == RunStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_retryable_failure(self, service, catalog, mock_acompletion):
        catalog.list_properties = AsyncMock(side_effect=RuntimeError("catalog down"))
        run_id = service.submit_document(EMAIL, "text/plain")

        result = await service.run(run_id)

        assert result.status == RunStatus.FAILED
        assert result.retryable
        assert result.final_state == RunState.FAILED
        assert "catalog down" in result.failure_reason

    @pytest.mark.asyncio
    async def test_extract_releases_document(self, service, mock_acompletion):
        result = await service.extract(EMAIL, "text", "Reserva Sete Rios.txt")
        assert result.status == RunStatus.ACCEPTED
        assert service.get_result(result.run_id) == result
        with pytest.raises(KeyError):
            await service.run(result.run_id)

    def test_from_settings(self, catalog, cost_tracker):
        service = ExtractionService.from_settings(
            PipelineSettings(pinned_provider="mistral", max_requests=7), catalog, cost_tracker,
        )
        assert service.adapter.pinned == "mistral"
        assert service.adapter.rate_limiter.max_requests == 7
        assert service.cost_tracker is cost_tracker


# =============================================================================
# ExtractionWorkerPool
# =============================================================================


class TestWorkerPool:
    def test_retry_delay_doubles(self, service):
        pool = ExtractionWorkerPool(service, backoff_base=1.0)
        assert [pool.retry_delay(a) for a in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_needs_a_worker(self, service):
        with pytest.raises(ValueError):
            ExtractionWorkerPool(service, workers=0)

    @pytest.mark.asyncio
    async def test_processes_submitted_documents(self, service, mock_acompletion):
        pool = ExtractionWorkerPool(service, workers=2)
        pool.start()
        try:
            run_ids = [pool.submit(f"{EMAIL} #{i}", "text/plain", "Reserva Sete Rios.txt") for i in range(4)]
            await asyncio.wait_for(pool.join(), timeout=5)
        finally:
            await pool.stop()

        assert all(service.get_result(r).status == RunStatus.ACCEPTED for r in run_ids)
        assert mock_acompletion.await_count == 4

    @pytest.mark.asyncio
    async def test_retryable_failure_retried_until_max_attempts(self, service, mock_acompletion, status_error):
        mock_acompletion.side_effect = status_error("Service unavailable", 503)
        sleep = AsyncMock()
        pool = ExtractionWorkerPool(service, workers=1, max_attempts=3, backoff_base=1.0, sleep=sleep)
        pool.start()
        try:
            run_id = pool.submit(EMAIL, "text/plain")
            await asyncio.wait_for(pool.join(), timeout=5)
        finally:
            await pool.stop()

        result = service.get_result(run_id)
        assert result.status == RunStatus.FAILED
        assert result.attempts == 3
        assert [call.args[0] for call in sleep.await_args_list] == [1.0, 2.0]
        # Three providers per attempt
        assert mock_acompletion.await_count == 9

    @pytest.mark.asyncio
    async def test_retry_can_succeed(self, service, mock_acompletion, completion_response, status_error):
        unavailable = status_error("Service unavailable", 503)
        mock_acompletion.side_effect = [unavailable, unavailable, unavailable, completion_response(RESERVATION)]
        pool = ExtractionWorkerPool(service, workers=1, sleep=AsyncMock())
        pool.start()
        try:
            run_id = pool.submit(EMAIL, "text/plain", "Reserva Sete Rios.txt")
            await asyncio.wait_for(pool.join(), timeout=5)
        finally:
            await pool.stop()

        result = service.get_result(run_id)
        assert result.status == RunStatus.ACCEPTED
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_unreadable_document_not_retried(self, service):
        sleep = AsyncMock()
        pool = ExtractionWorkerPool(service, workers=1, sleep=sleep)
        pool.start()
        try:
            run_id = pool.submit(b"not a pdf", "application/pdf", "broken.pdf")
            await asyncio.wait_for(pool.join(), timeout=5)
        finally:
            await pool.stop()

        result = service.get_result(run_id)
        assert result.status == RunStatus.FAILED
        assert not result.retryable
        assert result.attempts == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_worker_survives_lost_job(self, service, mock_acompletion):
        pool = ExtractionWorkerPool(service, workers=1)
        pool.start()
        try:
            pool.enqueue(ExtractionJob(run_id="missing"))
            run_id = pool.submit(EMAIL, "text/plain", "Reserva Sete Rios.txt")
            await asyncio.wait_for(pool.join(), timeout=5)
        finally:
            await pool.stop()

        assert service.get_result(run_id).status == RunStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_documents_released_after_final_attempt(self, service, mock_acompletion):
        pool = ExtractionWorkerPool(service, workers=1)
        pool.start()
        try:
            run_id = pool.submit(EMAIL, "text/plain", "Reserva Sete Rios.txt")
            await asyncio.wait_for(pool.join(), timeout=5)
        finally:
            await pool.stop()

        with pytest.raises(KeyError):
            await service.run(run_id)
