"""Tests for the USD->KRW rate fetch and its fallback."""

import asyncio

import httpx
import pytest

from ledger.audit import AuditLogger
from ledger.config.settings import ExchangeRateSettings
from ledger.models.audit import AuditEventType
from ledger.services.exchange_rate import ExchangeRateService, RateFetchError


@pytest.fixture
def rate_settings():
    return ExchangeRateSettings(
        api_url="https://rates.test/latest/{base}",
        refresh_interval_seconds=60,
        fallback_rate=1300.0,
    )


def service_with(settings, handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ExchangeRateService(settings=settings, client=client)


def respond(status=200, **kwargs):
    def handler(request):
        return httpx.Response(status, **kwargs)
    return handler


class TestFetchRate:

    @pytest.mark.asyncio
    async def test_reads_krw_rate(self, rate_settings):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"base": "USD", "rates": {"KRW": 1342.5, "EUR": 0.92}})

        service = service_with(rate_settings, handler)
        assert await service.fetch_rate() == 1342.5
        assert str(seen[0]) == "https://rates.test/latest/USD"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handler", [
        respond(503, text="unavailable"),
        respond(200, text="<html>"),
        respond(200, json={"rates": {"EUR": 0.9}}),
        respond(200, json={"rates": {"KRW": "abc"}}),
        respond(200, json={"rates": {"KRW": 0}}),
        respond(200, json={"rates": {"KRW": "NaN"}}),
        respond(200, json=["not", "an", "object"]),
    ])
    async def test_bad_responses_raise(self, rate_settings, handler):
        service = service_with(rate_settings, handler)
        with pytest.raises(RateFetchError):
            await service.fetch_rate()

    @pytest.mark.asyncio
    async def test_timeout_raises(self, rate_settings):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        service = service_with(rate_settings, handler)
        with pytest.raises(RateFetchError):
            await service.fetch_rate()


class TestRefresh:

    def test_fallback_before_first_refresh(self, rate_settings):
        service = ExchangeRateService(settings=rate_settings)
        assert service.latest is None
        assert service.current_rate == 1300.0

    @pytest.mark.asyncio
    async def test_successful_refresh(self, rate_settings):
        service = service_with(rate_settings, respond(200, json={"rates": {"KRW": 1350}}))

        latest = await service.refresh()

        assert latest.rate == 1350.0
        assert latest.is_fallback is False
        assert service.current_rate == 1350.0

    @pytest.mark.asyncio
    async def test_failed_refresh_uses_fallback(self, rate_settings):
        service = service_with(rate_settings, respond(500))

        latest = await service.refresh()

        assert latest.rate == 1300.0
        assert latest.is_fallback is True
        assert service.current_rate == 1300.0

    @pytest.mark.asyncio
    async def test_run_periodic_stops_on_event(self, rate_settings):
        service = service_with(rate_settings, respond(200, json={"rates": {"KRW": 1350}}))
        stop = asyncio.Event()

        task = asyncio.create_task(service.run_periodic(stop))
        await asyncio.sleep(0.05)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert service.current_rate == 1350.0
        await service.close()


class RecordingAuditStorage:

    def __init__(self):
        self.events = []

    async def append_event(self, event):
        self.events.append(event)
        return True


class TestRefreshAudit:

    @pytest.mark.asyncio
    async def test_fetched_rate_is_audited(self, rate_settings):
        storage = RecordingAuditStorage()
        client = httpx.AsyncClient(transport=httpx.MockTransport(
            respond(200, json={"rates": {"KRW": 1350}})
        ))
        service = ExchangeRateService(
            settings=rate_settings, client=client, audit_logger=AuditLogger(storage)
        )

        await service.refresh()

        assert [e.event_type for e in storage.events] == [AuditEventType.RATE_FETCHED]
        assert storage.events[0].details["rate"] == 1350.0

    @pytest.mark.asyncio
    async def test_fallback_is_audited_with_the_error(self, rate_settings):
        storage = RecordingAuditStorage()
        client = httpx.AsyncClient(transport=httpx.MockTransport(respond(503)))
        service = ExchangeRateService(
            settings=rate_settings, client=client, audit_logger=AuditLogger(storage)
        )

        await service.refresh()

        event = storage.events[0]
        assert event.event_type == AuditEventType.RATE_FALLBACK_USED
        assert "503" in event.error_message
