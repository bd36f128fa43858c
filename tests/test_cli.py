"""
Tests for CLI module.

Tests command-line interface commands and output.
"""

from datetime import datetime, timezone

import pytest
from typer.testing import CliRunner

from version_vault import __version__
from version_vault.cli.main import app
from version_vault.core.models import FetchMethod, LearnedPattern, ScrapingStrategy
from version_vault.storage import Database, PatternRepository

DB_ENV = "VERSION_VAULT__STORAGE__DATABASE_PATH"


class TestCLI:
    """Tests for CLI commands."""

    @pytest.fixture
    def runner(self) -> CliRunner:
        """Provide a CLI test runner."""
        return CliRunner()

    def test_cli_help(self, runner: CliRunner):
        """CLI should show help."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "Usage" in result.output
        for command in ("extract", "batch", "detect", "fetch", "sitemap", "feed", "compare", "patterns"):
            assert command in result.output

    def test_version(self, runner: CliRunner):
        """--version should print the package version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"VersionVault v{__version__}" in result.output

    def test_extract_help(self, runner: CliRunner):
        """Extract command should show help."""
        result = runner.invoke(app, ["extract", "--help"])

        assert result.exit_code == 0
        assert "--version-url" in result.output

    @pytest.mark.parametrize("first, second, symbol", [
        ("19.1.3", "9.6.1", ">"),
        ("1.0", "1.0.0", "="),
        ("v2.4", "2.10", "<"),
    ])
    def test_compare(self, runner: CliRunner, first, second, symbol):
        """Compare should order versions numerically."""
        result = runner.invoke(app, ["compare", first, second])

        assert result.exit_code == 0
        assert f"{first} {symbol} {second}" in result.output

    def test_extract_rejects_unknown_kind(self, runner: CliRunner):
        """An unknown --kind should fail before any fetching."""
        result = runner.invoke(app, ["extract", "Acme Widget", "https://acme.example", "--kind", "carrier-pigeon"])

        assert result.exit_code == 1
        assert "Invalid source kind" in result.output

    def test_batch_rejects_incomplete_entries(self, runner: CliRunner, temp_dir):
        """Products without a website should be reported, not crash."""
        products = temp_dir / "products.yaml"
        products.write_text("- name: Acme Widget\n", encoding="utf-8")

        result = runner.invoke(app, ["batch", str(products)])

        assert result.exit_code == 1
        assert "Invalid products file" in result.output

    def test_sitemap_invalid_url(self, runner: CliRunner):
        """A URL without a host should find nothing."""
        result = runner.invoke(app, ["sitemap", "not a url"])

        assert result.exit_code == 0
        assert "No release pages found" in result.output


class TestPatternsCommand:
    """Tests for the patterns command against a temporary database."""

    @pytest.fixture
    def runner(self) -> CliRunner:
        return CliRunner()

    def test_empty(self, runner: CliRunner, temp_dir):
        result = runner.invoke(app, ["patterns"], env={DB_ENV: str(temp_dir / "vault.db")})

        assert result.exit_code == 0
        assert "No patterns learned yet" in result.output

    def test_lists_patterns(self, runner: CliRunner, temp_dir):
        db_path = temp_dir / "vault.db"
        db = Database(db_path)
        repo = PatternRepository(db)
        for domain, rate in (("acme.example", 92), ("widgets.example", 75)):
            repo.upsert(LearnedPattern(
                domain=domain,
                success_rate=rate,
                last_successful=datetime(2026, 1, 15, tzinfo=timezone.utc),
                strategy=ScrapingStrategy(selectors=["#changelog"]),
                method=FetchMethod.BROWSERLESS,
            ))
        db.close()

        result = runner.invoke(app, ["patterns", "--common"], env={DB_ENV: str(db_path)})

        assert result.exit_code == 0
        assert "acme.example" in result.output
        assert "92%" in result.output
        assert "2026-01-15" in result.output
        assert ".example: #changelog" in result.output
