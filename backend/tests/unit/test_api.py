"""
Unit tests for the HTTP API.

The UpdateChecker is mocked so the lifespan refresh and the endpoints run
without Docker or network access.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from cup.main import ReportService, create_app, refresh_periodically
from cup.models.config_models import CupConfig
from cup.status import Status
from cup.updates.types import CheckResult, Parts


def make_result(reference, status, **details):
    return CheckResult(reference, Parts.from_reference(reference), "version", status, **details)


@pytest.fixture
def checker():
    mock = MagicMock()
    mock.check = AsyncMock(return_value=[
        make_result("nginx:1.25.2", Status.MINOR, new_tag="1.26.0", current_version="1.25.2", new_version="1.26.0"),
        make_result("redis:7.2", Status.UP_TO_DATE),
    ])
    return mock


@pytest.fixture
def client(checker):
    app = create_app(CupConfig(), checker=checker)
    with TestClient(app) as test_client:
        yield test_client


class TestEndpoints:
    """Test the report endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "cup"}

    def test_initial_refresh_runs_on_startup(self, client, checker):
        checker.check.assert_awaited_once()

    def test_json_report(self, client):
        response = client.get("/api/v3/json")

        assert response.status_code == 200
        data = response.json()
        assert data["metrics"]["monitored_images"] == 2
        assert data["metrics"]["minor_updates"] == 1
        assert [image["reference"] for image in data["images"]] == ["nginx:1.25.2", "redis:7.2"]
        assert data["images"][0]["result"]["info"]["new_tag"] == "1.26.0"
        assert data["last_updated"]

    def test_refresh(self, client, checker):
        checker.check.return_value = [make_result("redis:7.2", Status.AVAILABLE, remote_digest="sha256:x")]

        response = client.get("/api/v3/refresh")

        assert response.status_code == 200
        assert response.text == "OK"
        assert checker.check.await_count == 2
        assert client.get("/api/v3/json").json()["metrics"]["updates_available"] == 1


class TestLifespan:
    """Test the scheduled refresh task lifecycle"""

    def test_refresh_task_finishes_before_shutdown(self, checker):
        stopped = []

        async def fake_refresh_periodically(service, interval):
            try:
                await asyncio.Event().wait()
            finally:
                await asyncio.sleep(0)
                stopped.append(interval)

        app = create_app(CupConfig.model_validate({"refresh_interval": "1h"}), checker=checker)
        with patch("cup.main.refresh_periodically", fake_refresh_periodically):
            with TestClient(app):
                assert stopped == []

        assert stopped == [3600]


class TestReportService:
    """Test refresh bookkeeping"""

    @pytest.mark.asyncio
    async def test_report_before_first_refresh(self, checker):
        service = ReportService(checker)

        report = service.report()

        assert report["images"] == []
        assert report["metrics"]["monitored_images"] == 0

    @pytest.mark.asyncio
    async def test_refresh_updates_timestamp(self, checker):
        service = ReportService(checker)

        await service.refresh()

        assert service.last_updated is not None
        assert len(service.results) == 2

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_are_serialized(self):
        running = 0
        overlap = []

        async def slow_check():
            nonlocal running
            running += 1
            overlap.append(running)
            await asyncio.sleep(0.01)
            running -= 1
            return []

        checker = MagicMock()
        checker.check = slow_check
        service = ReportService(checker)

        await asyncio.gather(service.refresh(), service.refresh(), service.refresh())

        assert overlap == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_periodic_refresh_survives_failures(self, checker):
        checker.check.side_effect = [RuntimeError("docker gone"), []]
        service = ReportService(checker)

        task = asyncio.create_task(refresh_periodically(service, 0.001))
        for _ in range(100):
            await asyncio.sleep(0.005)
            if checker.check.await_count >= 2:
                break
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert checker.check.await_count >= 2
        assert service.results == []
