"""
Unit tests for the JSON report and its metrics.
"""

from datetime import datetime, timezone

from cup.status import Status
from cup.updates.report import build_metrics, build_report
from cup.updates.types import DIGEST_MODE, VERSION_MODE, CheckResult, Parts


def result(reference, status, **details):
    mode = VERSION_MODE if details.get("new_tag") else DIGEST_MODE
    return CheckResult(reference, Parts.from_reference(reference), mode, status, **details)


class TestMetrics:
    """Test outcome counters"""

    def test_counts_every_outcome(self):
        metrics = build_metrics([
            result("a:1", Status.MAJOR, new_tag="2"),
            result("b:1.0", Status.MINOR, new_tag="1.1"),
            result("c:1.0.0", Status.PATCH, new_tag="1.0.1"),
            result("d:latest", Status.AVAILABLE, remote_digest="sha256:x"),
            result("e:latest", Status.UP_TO_DATE),
            result("f:latest", Status.UNKNOWN, error="Not found"),
            result("g:1.0", Status.UNKNOWN, error="Tag does not exist"),
        ])

        assert metrics == {
            "monitored_images": 7,
            "up_to_date": 1,
            "updates_available": 4,
            "major_updates": 1,
            "minor_updates": 1,
            "patch_updates": 1,
            "other_updates": 1,
            "unknown": 2,
        }

    def test_empty(self):
        metrics = build_metrics([])

        assert metrics["monitored_images"] == 0
        assert set(metrics.values()) == {0}


class TestReport:
    """Test the report document"""

    def test_document_shape(self):
        when = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        results = [
            result("nginx:1.25.2", Status.MINOR, new_tag="1.26.0", current_version="1.25.2",
                   new_version="1.26.0", used_by=["web"], time_ms=42),
            result("redis:latest", Status.UNKNOWN, error="Connection failed!"),
        ]

        report = build_report(results, last_updated=when)

        assert report["last_updated"] == "2024-05-01T12:00:00+00:00"
        assert report["metrics"]["minor_updates"] == 1
        assert report["images"][0] == {
            "reference": "nginx:1.25.2",
            "parts": {"registry": "registry-1.docker.io", "repository": "library/nginx", "tag": "1.25.2"},
            "result": {
                "has_update": True,
                "info": {
                    "type": "version",
                    "version_update_type": "minor",
                    "new_tag": "1.26.0",
                    "current_version": "1.25.2",
                    "new_version": "1.26.0",
                },
                "error": None,
            },
            "time": 42,
            "server": None,
            "used_by": ["web"],
        }
        assert report["images"][1]["result"] == {"has_update": None, "info": None, "error": "Connection failed!"}

    def test_up_to_date_has_no_info(self):
        report = build_report([result("alpine:3.19", Status.UP_TO_DATE, new_tag="3.19")])

        assert report["images"][0]["result"] == {"has_update": False, "info": None, "error": None}
        assert report["last_updated"].endswith("+00:00")


class TestPeerEntries:
    """Test round-tripping peer report entries"""

    def test_peer_status_is_kept(self):
        entry = {
            "reference": "ghcr.io/org/app:latest",
            "result": {
                "has_update": True,
                "info": {"type": "digest", "local_digests": ["sha256:a"], "remote_digest": "sha256:b"},
                "error": None,
            },
            "time": 7,
        }

        peer = CheckResult.from_report_entry(entry, server="alpha")

        assert peer.status == Status.AVAILABLE
        assert peer.parts == Parts("ghcr.io", "org/app", "latest")
        assert peer.to_report_entry() == {**entry, "server": "alpha"}

    def test_unknown_version_update_type_is_generic(self):
        entry = {"reference": "x:1", "result": {"has_update": True, "info": {"type": "version"}}}

        assert CheckResult.from_report_entry(entry, server="alpha").status == Status.AVAILABLE

    def test_failed_peer_check(self):
        entry = {"reference": "x:1", "result": {"has_update": None, "info": None, "error": "Not found"}}

        peer = CheckResult.from_report_entry(entry, server="alpha")

        assert peer.status == Status.UNKNOWN
        assert peer.error == "Not found"
