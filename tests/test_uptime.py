"""Tests for the service status collector and the uptime API."""

import datetime

import httpx
import pytest

from flixstatus.config import settings
from flixstatus.models import ServiceStatusSnapshot
from flixstatus.ratelimit import RateLimitStore
from flixstatus.services import uptime
from flixstatus.services.uptime import ServiceConfig


THREE = (
    ServiceConfig("database", "Base de datos", "/api/status/database"),
    ServiceConfig("storage", "Storage", "/api/status/storage"),
    ServiceConfig("transcoder", "Transcoder", "/api/status/transcoder"),
)


def status_handler(request):
    """All four dependencies up."""
    return httpx.Response(200, json={"success": True, "message": "ok"})


def degraded_handler(request):
    """Database up, storage erroring, transcoder timing out, CDN up."""
    path = request.url.path
    if path.endswith("/storage"):
        return httpx.Response(500, json={"success": False, "error": "AccessDenied"})
    if path.endswith("/transcoder"):
        raise httpx.ReadTimeout("timed out", request=request)
    return httpx.Response(200, json={"success": True})


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestCollector:
    """collect_snapshot / fetch_service_status."""

    @pytest.mark.asyncio
    async def test_two_of_three_failing(self):
        async with _client(degraded_handler) as c:
            summary, services = await uptime.collect_snapshot("http://app.local", c, THREE)

        assert summary["healthy"] == 1
        assert summary["total"] == 3
        assert summary["allHealthy"] is False
        assert len(services) == 3
        assert [s["ok"] for s in services] == [True, False, False]
        assert services[1]["details"] == "AccessDenied"
        assert services[1]["statusCode"] == 500
        assert services[2]["details"] == "Timeout"
        assert services[2]["statusCode"] is None

    @pytest.mark.asyncio
    async def test_all_healthy(self):
        async with _client(status_handler) as c:
            summary, services = await uptime.collect_snapshot("http://app.local/", c)
        assert summary["healthy"] == summary["total"] == len(uptime.SERVICES)
        assert summary["allHealthy"] is True
        assert [s["id"] for s in services] == ["database", "storage", "transcoder", "cloudflare"]
        assert "lastCheckAt" in summary

    @pytest.mark.asyncio
    async def test_empty_service_list_is_not_all_healthy(self):
        async with _client(status_handler) as c:
            summary, services = await uptime.collect_snapshot("http://app.local", c, ())
        assert services == []
        assert summary["allHealthy"] is False

    @pytest.mark.asyncio
    async def test_success_false_in_200_body_is_failure(self):
        handler = lambda r: httpx.Response(200, json={"success": False, "message": "degradado"})
        async with _client(handler) as c:
            result = await uptime.fetch_service_status(c, THREE[0], "http://app.local")
        assert result["ok"] is False
        assert result["details"] == "degradado"

    @pytest.mark.asyncio
    async def test_non_json_error_uses_http_code(self):
        handler = lambda r: httpx.Response(502, text="<html>bad gateway</html>")
        async with _client(handler) as c:
            result = await uptime.fetch_service_status(c, THREE[0], "http://app.local")
        assert result == {
            "id": "database",
            "name": "Base de datos",
            "ok": False,
            "statusCode": 502,
            "details": "HTTP 502",
        }

    @pytest.mark.asyncio
    async def test_connection_error_is_captured(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as c:
            result = await uptime.fetch_service_status(c, THREE[0], "http://app.local")
        assert result["ok"] is False
        assert "connection refused" in result["details"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_does_not_abort_others(self, monkeypatch):
        original = uptime.fetch_service_status

        async def flaky(client, service, base_url, timeout=None):
            if service.id == "storage":
                raise RuntimeError("boom")
            return await original(client, service, base_url, timeout)

        monkeypatch.setattr(uptime, "fetch_service_status", flaky)
        async with _client(status_handler) as c:
            summary, services = await uptime.collect_snapshot("http://app.local", c, THREE)
        assert summary["healthy"] == 2
        assert services[1] == {
            "id": "storage",
            "name": "Storage",
            "ok": False,
            "statusCode": None,
            "details": "boom",
        }


class TestClampLimit:
    @pytest.mark.parametrize(
        "raw,expected",
        [(None, 24), ("", 24), ("abc", 24), ("0", 24), ("12", 12), ("500", 168), ("-5", 1), ("168", 168)],
    )
    def test_clamp(self, raw, expected):
        assert uptime.clamp_limit(raw) == expected


def _seed(session, n):
    base = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)
    for i in range(n):
        session.add(
            ServiceStatusSnapshot(
                healthy=i % 5,
                total=4,
                all_healthy=False,
                services=[],
                created_at=base + datetime.timedelta(hours=i),
            )
        )
    session.commit()


class TestHistoryEndpoint:
    """GET /api/admin/uptime/history."""

    def test_empty(self, client):
        assert client.get("/api/admin/uptime/history").json() == {"data": [], "count": 0}

    def test_default_limit_and_order(self, client, session):
        _seed(session, 30)
        data = client.get("/api/admin/uptime/history").json()
        assert data["count"] == 24
        stamps = [row["createdAt"] for row in data["data"]]
        assert stamps == sorted(stamps, reverse=True)

    def test_limit_capped(self, client, session):
        _seed(session, 200)
        data = client.get("/api/admin/uptime/history", params={"limit": 500}).json()
        assert data["count"] == 168
        assert len(data["data"]) == 168

    @pytest.mark.parametrize("limit", ["0", "abc"])
    def test_invalid_limit_falls_back(self, client, session, limit):
        _seed(session, 30)
        data = client.get("/api/admin/uptime/history", params={"limit": limit}).json()
        assert data["count"] == 24

    def test_snapshot_shape(self, client, session):
        session.add(
            ServiceStatusSnapshot(
                healthy=1,
                total=2,
                all_healthy=False,
                services=[
                    {"id": "database", "name": "DB", "ok": True, "statusCode": 200, "details": None},
                    {"id": "storage", "name": "S3", "ok": False, "statusCode": None, "details": "Timeout"},
                ],
            )
        )
        session.commit()
        row = client.get("/api/admin/uptime/history?limit=1").json()["data"][0]
        assert set(row) == {"id", "healthy", "total", "allHealthy", "services", "createdAt"}
        assert row["services"][1]["details"] == "Timeout"


class TestRecordEndpoint:
    """GET /api/admin/uptime/record."""

    def test_records_snapshot(self, client, session, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "")
        route_outbound(degraded_handler)
        response = client.get("/api/admin/uptime/record")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["summary"]["total"] == 4
        assert data["summary"]["healthy"] == 2

        stored = session.get(ServiceStatusSnapshot, data["snapshotId"])
        assert stored.healthy == 2
        assert stored.all_healthy is False
        assert len(stored.services) == 4

    def test_fans_out_to_request_origin(self, client, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "")
        hosts = set()

        def handler(request):
            hosts.add(request.url.host)
            return httpx.Response(200, json={"success": True})

        route_outbound(handler)
        client.get("/api/admin/uptime/record")
        assert hosts == {"testserver"}

    def test_wrong_secret_is_401(self, client, session, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "s3cret")
        route_outbound(status_handler)
        response = client.get("/api/admin/uptime/record", params={"secret": "nope"})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert session.query(ServiceStatusSnapshot).count() == 0

    def test_missing_secret_is_401(self, client, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "s3cret")
        route_outbound(status_handler)
        assert client.get("/api/admin/uptime/record").status_code == 401

    def test_secret_in_query(self, client, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "s3cret")
        route_outbound(status_handler)
        response = client.get("/api/admin/uptime/record", params={"secret": "s3cret"})
        assert response.status_code == 200

    def test_secret_in_header(self, client, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "s3cret")
        route_outbound(status_handler)
        response = client.get("/api/admin/uptime/record", headers={"x-cron-secret": "s3cret"})
        assert response.status_code == 200

    def test_unauthorized_keeps_rate_limit_headers(self, client, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "s3cret")
        route_outbound(status_handler)
        response = client.get("/api/admin/uptime/record", params={"secret": "nope"})
        assert response.status_code == 401
        assert response.headers["X-RateLimit-Limit"] == str(settings.RECORD_RATE_MAX)
        assert response.headers["X-RateLimit-Remaining"] == str(settings.RECORD_RATE_MAX - 1)
        assert "X-RateLimit-Reset" in response.headers

    def test_persistence_failure_is_structured(self, client, session, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "")
        route_outbound(status_handler)

        def broken_record(db, summary, services):
            raise RuntimeError("disk full")

        monkeypatch.setattr(uptime, "record_snapshot", broken_record)
        response = client.get("/api/admin/uptime/record")
        assert response.status_code == 500
        assert response.json() == {"error": "Error al registrar snapshot de uptime"}
        assert "X-RateLimit-Remaining" in response.headers
        assert session.query(ServiceStatusSnapshot).count() == 0

    def test_rate_limited(self, app, client, route_outbound, monkeypatch):
        monkeypatch.setattr(settings, "UPTIME_CRON_SECRET", "")
        app.state.rate_limits["record"] = RateLimitStore(window_ms=60_000, max=2)
        route_outbound(status_handler)
        headers = {"x-forwarded-for": "203.0.113.7"}

        first = client.get("/api/admin/uptime/record", headers=headers)
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert client.get("/api/admin/uptime/record", headers=headers).status_code == 200

        blocked = client.get("/api/admin/uptime/record", headers=headers)
        assert blocked.status_code == 429
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        assert int(blocked.headers["Retry-After"]) > 0

        other = client.get("/api/admin/uptime/record", headers={"x-forwarded-for": "198.51.100.1"})
        assert other.status_code == 200


class TestCurrentEndpoint:
    def test_live_collection_not_persisted(self, client, session, route_outbound):
        route_outbound(status_handler)
        data = client.get("/api/admin/uptime").json()
        assert data["summary"]["allHealthy"] is True
        assert len(data["services"]) == 4
        assert session.query(ServiceStatusSnapshot).count() == 0
