"""
Tests for output rendering (bucket_audit/render.py).
"""

import io
import json

from bucket_audit.render import (
    fit,
    render_search_results,
    render_status,
    search_results_to_json,
    status_to_json,
)
from bucket_audit.repositories import Scope
from bucket_audit.search import SearchHit
from bucket_audit.status import ScoopStatus, StatusRow


class TestFit:
    """Tests for column fitting."""

    def test_pads_short_text(self):
        """Test padding to the column width."""
        assert fit("git", 6) == "git   "

    def test_elides_long_text(self):
        """Test that long values are cut with '..'."""
        assert fit("very-long-package-name", 10) == "very-lo.. "


class TestRenderSearchResults:
    """Tests for render_search_results()."""

    def test_no_matches(self):
        """Test the empty-result message."""
        out = io.StringIO()
        render_search_results([], "nothing", stream=out)
        assert out.getvalue() == "No matches found for 'nothing'.\n"

    def test_grouped_by_repository(self):
        """Test repository headers, installed markers and binary notes."""
        hits = [
            SearchHit("foo", "1.0", "main", Scope.USER, installed=True),
            SearchHit("bar", "2.0", "main", Scope.USER, binaries=("foo-cli",)),
            SearchHit("foobar", "", "extras", Scope.GLOBAL),
        ]
        out = io.StringIO()
        render_search_results(hits, "foo", stream=out)
        assert out.getvalue().splitlines() == [
            "'main' bucket (user):",
            "    foo (1.0) [installed]",
            "    bar (2.0) --> includes 'foo-cli'",
            "'extras' bucket (global):",
            "    foobar (?)",
        ]

    def test_json(self):
        """Test JSON serialization of hits."""
        data = json.loads(search_results_to_json([SearchHit("foo", "1.0", "main", Scope.USER)]))
        assert data[0]["name"] == "foo"
        assert data[0]["bucket"] == "main"


class TestRenderStatus:
    """Tests for render_status() and status_to_json()."""

    def test_all_fresh(self):
        """Test the summary lines when nothing needs attention."""
        out = io.StringIO()
        render_status([StatusRow("git", "1.0", "1.0", False)], ScoopStatus(), stream=out)
        assert out.getvalue().splitlines() == [
            "Scoop is up to date.",
            "All buckets are up to date.",
            "All packages are okay and up to date.",
        ]

    def test_table(self):
        """Test the table of packages with issues."""
        rows = [
            StatusRow("git", "2.44.0", "2.45.0", True),
            StatusRow("ok", "1.0", "1.0", False),
            StatusRow("orphan", "1.0", None, False, removed=True, info=("Manifest removed",)),
        ]
        out = io.StringIO()
        render_status(rows, ScoopStatus(self_outdated=True, any_bucket_outdated=True), stream=out)
        lines = out.getvalue().splitlines()

        assert lines[0].startswith("Scoop is out of date.")
        assert lines[1].startswith("Bucket(s) are out of date.")
        assert lines[3].split() == ["Name", "Installed", "Latest", "Missing", "Dependencies", "Info"]
        assert set(lines[4]) == {"-"}
        assert lines[5].split() == ["git", "2.44.0", "2.45.0"]
        assert lines[6].split() == ["orphan", "1.0", "Manifest", "removed"]
        assert len(lines) == 7

    def test_status_json(self):
        """Test that the JSON report lists rows with issues and held rows."""
        rows = [
            StatusRow("git", "1.0", "2.0", True),
            StatusRow("fine", "1.0", "1.0", False),
            StatusRow("pinned", "1.0", "1.0", False, held=True, info=("Held package",)),
        ]
        data = json.loads(status_to_json(rows, ScoopStatus(any_bucket_outdated=True)))
        assert data["scoop"] == {"outdated": False}
        assert data["buckets"] == {"outdated": True}
        assert [app["name"] for app in data["apps"]] == ["git", "pinned"]
