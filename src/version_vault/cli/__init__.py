"""
CLI module for VersionVault.

Provides command-line interface using Typer:
- extract / batch: Run the extraction pipeline
- detect / fetch: Inspect acquisition of a single page
- sitemap / feed: Explore release sources
- compare / patterns: Version and pattern utilities
"""

from version_vault.cli.main import app

__all__ = ["app"]
