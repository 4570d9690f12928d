"""
Tests for the command-line entry point (bucket_audit/cli.py).
"""

import json
import sys
from unittest.mock import patch

import pytest

from bucket_audit.cli import build_parser, main

skip_on_windows = pytest.mark.skipif(
    sys.platform == "win32",
    reason="current links are created as symlinks"
)


@pytest.fixture
def scoop_tree(tmp_path):
    """A user root with one bucket, one installed package and a config file."""
    user_root = tmp_path / "user"
    manifests = user_root / "buckets" / "main" / "bucket"
    manifests.mkdir(parents=True)
    (manifests / "foo.json").write_text(json.dumps({"version": "2.0", "bin": "foo.exe"}))
    (manifests / "bar.json").write_text(json.dumps({"version": "1.0"}))

    version_dir = user_root / "apps" / "foo" / "1.0"
    version_dir.mkdir(parents=True)
    (version_dir / "install.json").write_text(json.dumps({"bucket": "main"}))
    (user_root / "apps" / "foo" / "current").symlink_to(version_dir, target_is_directory=True)

    config = tmp_path / "config.yml"
    config.write_text(
        f"roots:\n  user: {user_root}\n  global: {tmp_path / 'global'}\n"
    )
    with patch("bucket_audit.config.CONFIG_LOCATIONS", []):
        yield config


class TestParser:
    """Tests for argument parsing."""

    def test_search_arguments(self):
        """Test search flags."""
        args = build_parser().parse_args(["search", "git", "-b", "main", "-c", "-i", "--json"])
        assert args.query == "git"
        assert args.bucket == "main"
        assert args.case_sensitive and args.installed and args.json

    def test_status_arguments(self):
        """Test status flags."""
        args = build_parser().parse_args(["-v", "status", "--local"])
        assert args.verbose and args.local
        assert not args.json

    def test_command_required(self):
        """Test that a subcommand is required."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


@skip_on_windows
class TestMain:
    """End-to-end runs of main() against a temporary install root."""

    def test_search_json(self, scoop_tree, capsys):
        """Test JSON search output with the installed marker."""
        assert main(["-q", "--config", str(scoop_tree), "search", "foo", "--json"]) == 0
        hits = json.loads(capsys.readouterr().out)
        assert [(h["name"], h["installed"]) for h in hits] == [("foo", True)]

    def test_search_text_no_match(self, scoop_tree, capsys):
        """Test the text output for a query with no hits."""
        assert main(["-q", "--config", str(scoop_tree), "search", "zzz"]) == 0
        assert "No matches found for 'zzz'." in capsys.readouterr().out

    def test_search_installed_only(self, scoop_tree, capsys):
        """Test restricting results to installed packages."""
        assert main(["-q", "--config", str(scoop_tree), "search", "a", "--installed", "--json"]) == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_search_installed_from_other_bucket(self, scoop_tree, capsys):
        """Test that --installed keeps every bucket's hit for an installed name."""
        user_root = scoop_tree.parent / "user"
        extras = user_root / "buckets" / "extras"
        extras.mkdir(parents=True)
        (extras / "foo.json").write_text(json.dumps({"version": "2.1"}))
        (user_root / "apps" / "foo" / "1.0" / "install.json").write_text(json.dumps({"bucket": "extras"}))

        assert main(["-q", "--config", str(scoop_tree), "search", "foo", "--installed", "--json"]) == 0
        hits = json.loads(capsys.readouterr().out)
        assert sorted((h["bucket"], h["installed"]) for h in hits) == [
            ("extras", True),
            ("main", True),
        ]

    def test_search_marks_source_bucket_only(self, scoop_tree, capsys):
        """Test that without --installed only the source bucket's hit is marked."""
        user_root = scoop_tree.parent / "user"
        extras = user_root / "buckets" / "extras"
        extras.mkdir(parents=True)
        (extras / "foo.json").write_text(json.dumps({"version": "2.1"}))

        assert main(["-q", "--config", str(scoop_tree), "search", "foo", "--json"]) == 0
        hits = json.loads(capsys.readouterr().out)
        assert sorted((h["bucket"], h["installed"]) for h in hits) == [
            ("extras", False),
            ("main", True),
        ]

    def test_search_empty_query(self, scoop_tree):
        """Test that a blank query is a usage error."""
        assert main(["-q", "--config", str(scoop_tree), "search", "  "]) == 2

    def test_status_local_json(self, scoop_tree, capsys):
        """Test the offline status report."""
        with patch("bucket_audit.status.is_repository_stale") as probe:
            assert main(["-q", "--config", str(scoop_tree), "status", "--local", "--json"]) == 0
        probe.assert_not_called()

        report = json.loads(capsys.readouterr().out)
        assert report["scoop"] == {"outdated": False}
        assert report["buckets"] == {"outdated": False}
        (app,) = report["apps"]
        assert app["name"] == "foo"
        assert app["installed_version"] == "1.0"
        assert app["latest_version"] == "2.0"
        assert app["outdated"] is True

    def test_status_with_probes(self, scoop_tree, capsys):
        """Test that freshness probes run outside local mode."""
        with patch("bucket_audit.status.is_repository_stale", return_value=True):
            assert main(["-q", "--config", str(scoop_tree), "status"]) == 0
        out = capsys.readouterr().out
        assert "Scoop is out of date." in out
        assert "Bucket(s) are out of date." in out
        assert "foo" in out

    def test_bad_config_path(self, tmp_path):
        """Test that an unreadable config file exits with an error code."""
        assert main(["-q", "--config", str(tmp_path / "missing.yml"), "status", "--local"]) == 2
