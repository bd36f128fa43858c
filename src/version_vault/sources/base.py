"""
Source kinds and the common adapter result.
"""

from dataclasses import dataclass, field
from enum import Enum

from version_vault.core.models import FetchResult, VersionEntry


class SourceKind(str, Enum):
    """Where release information is read from."""

    WEBPAGE = "webpage"
    RSS = "rss"
    FORUM = "forum"
    PDF = "pdf"
    SITEMAP = "sitemap"
    PLAINTEXT = "plaintext"


@dataclass
class SourceContent:
    """
    Text obtained from one source.

    Attributes:
        url: Source URL
        kind: Adapter that produced the text
        text: Raw text handed to windowing
        method: How it was obtained (fetch method or parser name)
        success: False when acquisition or parsing failed
        fetch_result: Escalator result for fetched web pages
        versions: Structured releases when the source embeds them
    """

    url: str
    kind: SourceKind
    text: str
    method: str
    success: bool = True
    fetch_result: FetchResult | None = None
    versions: list[VersionEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()
