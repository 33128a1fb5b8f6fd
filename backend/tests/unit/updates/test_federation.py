"""
Unit tests for fetching results from peer servers.
"""

import pytest

from cup.status import Status
from cup.updates.errors import RegistryTimeout
from cup.updates.federation import fetch_server, fetch_servers
from cup.utils.http_client import HttpResponse
from tests.test_helpers import json_response


def entry(reference, has_update=False):
    return {"reference": reference, "result": {"has_update": has_update, "info": None, "error": None}}


class TestFetchServer:

    @pytest.mark.asyncio
    async def test_entries_tagged_with_server_name(self, fake_http):
        fake_http.add("GET", "http://alpha:8000/api/v3/json", json_response({
            "images": [entry("nginx:1.25"), entry("redis:7")],
        }))

        results = await fetch_server(fake_http, "alpha", "http://alpha:8000/")

        assert [r.reference for r in results] == ["nginx:1.25", "redis:7"]
        assert {r.server for r in results} == {"alpha"}
        assert results[0].status == Status.UP_TO_DATE
        assert fake_http.requests[0][2]["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_invalid_entries_are_skipped(self, fake_http):
        fake_http.add("GET", "http://alpha:8000/api/v3/json", json_response({
            "images": [entry("nginx:1.25"), "garbage", {"result": {}}],
        }))

        results = await fetch_server(fake_http, "alpha", "http://alpha:8000")

        assert [r.reference for r in results] == ["nginx:1.25"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_entry", [
        {"reference": "redis:7", "result": ["x"]},
        {"reference": "redis:7", "result": {"has_update": True, "info": "x"}},
        {"reference": "redis:7", "result": {"has_update": True, "info": {"type": "digest", "local_digests": 5}}},
        {"reference": "redis:7", "result": {"has_update": False}, "time": [1]},
        {"reference": "redis:7", "result": {"has_update": False}, "used_by": 3},
    ])
    async def test_entries_with_wrong_field_types_are_skipped(self, fake_http, bad_entry):
        fake_http.add("GET", "http://alpha:8000/api/v3/json", json_response({
            "images": [entry("nginx:1.25"), bad_entry],
        }))

        results = await fetch_servers(fake_http, {"alpha": "http://alpha:8000"})

        assert [r.reference for r in results] == ["nginx:1.25"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [
        HttpResponse(status=500),
        json_response({"metrics": {}}),
        json_response(["nginx"]),
        HttpResponse(status=200, body=b"<html>"),
        RegistryTimeout("Connection timed out!"),
    ])
    async def test_failures_contribute_nothing(self, fake_http, reply):
        fake_http.add("GET", "http://alpha:8000/api/v3/json", reply)

        assert await fetch_server(fake_http, "alpha", "http://alpha:8000") == []


class TestFetchServers:

    @pytest.mark.asyncio
    async def test_results_in_config_order(self, fake_http):
        fake_http.add("GET", "http://alpha:8000/api/v3/json", json_response({"images": [entry("a:1")]}))
        fake_http.add("GET", "http://beta:8000/api/v3/json", json_response({"images": [entry("b:1", True)]}))

        results = await fetch_servers(fake_http, {"beta": "http://beta:8000", "alpha": "http://alpha:8000"})

        assert [(r.server, r.reference) for r in results] == [("beta", "b:1"), ("alpha", "a:1")]
        assert results[0].status == Status.AVAILABLE

    @pytest.mark.asyncio
    async def test_no_servers(self, fake_http):
        assert await fetch_servers(fake_http, {}) == []
        assert fake_http.requests == []
