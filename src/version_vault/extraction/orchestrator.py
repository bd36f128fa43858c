"""
Extraction orchestrator.

Runs one product through the whole pipeline:

    pattern lookup -> acquisition -> windowing -> completion -> parsing
    -> sort/dedup/branch filter/quirks/re-sort -> version patterns
    -> validation -> anomalies -> pattern learning -> history

Acquisition and parsing failures degrade the result instead of
raising: an unreachable page yields an extraction with no versions and
an unreadable completion falls back to identity derived from the
domain.
"""

from dataclasses import dataclass, field
from urllib.parse import urlsplit

import httpx

from version_vault.acquisition.escalator import FetchEscalator
from version_vault.config.settings import Settings
from version_vault.core.exceptions import (
    BlockedError,
    CompletionAuthenticationError,
    CompletionError,
    ExtractionError,
    FetchError,
    StorageError,
    VersionVaultError,
)
from version_vault.core.models import (
    Anomaly,
    ExtractedInfo,
    FetchMethod,
    FetchResult,
    ScrapingStrategy,
    ValidationResult,
    VersionEntry,
    VersionSnapshot,
)
from version_vault.extraction.parsing import ParsedCompletion, parse_completion
from version_vault.extraction.prompts import build_extraction_prompt
from version_vault.extraction.quirks import QuirkRegistry, apply_quirks
from version_vault.extraction.version_patterns import (
    extract_version_generic,
    extract_version_with_pattern,
    get_pattern_for_product,
)
from version_vault.extraction.versions import (
    compare_versions,
    deduplicate_versions,
    filter_by_branch,
    pick_current_version,
    sort_versions,
)
from version_vault.extraction.windowing import METHOD_FALLBACK, SmartContent, extract_smart_content
from version_vault.llm.client import CompletionService
from version_vault.patterns.learner import PatternLearner
from version_vault.sources.base import SourceContent, SourceKind
from version_vault.sources.dispatch import acquire_source, detect_source_kind
from version_vault.sources.forum import ForumConfig
from version_vault.sources.webpage import fetch_webpage_text
from version_vault.storage.repositories import VersionHistoryStore
from version_vault.utils.logging import get_logger, get_logger_with_context
from version_vault.validation.anomalies import detect_anomalies, requires_manual_review
from version_vault.validation.validator import validate_extraction

logger = get_logger(__name__)

FALLBACK_CATEGORY = "Show Control"
UNKNOWN_MANUFACTURER = "Unknown"


@dataclass
class ExtractionRequest:
    """
    One product to extract.

    Attributes:
        name: Product name as the vendor writes it
        website: Vendor or product home page
        version_url: Release notes / downloads page; defaults to website
        description: Optional product description for the prompt
        source_kind: Force an adapter instead of guessing from the URL
        strategy: Page interactions; wins over any learned pattern
        forum_config: Topic filtering for forum sources
        previous: Last known extraction, overriding the history store
        product_key: History key; defaults to the lower-cased name
    """

    name: str
    website: str
    version_url: str | None = None
    description: str | None = None
    source_kind: SourceKind | None = None
    strategy: ScrapingStrategy | None = None
    forum_config: ForumConfig | None = None
    previous: VersionSnapshot | None = None
    product_key: str | None = None

    @property
    def target_url(self) -> str:
        return self.version_url or self.website

    @property
    def key(self) -> str:
        return self.product_key or self.name.strip().lower()


@dataclass
class ExtractionOutcome:
    """Everything one extraction run produced."""

    info: ExtractedInfo
    validation: ValidationResult
    anomalies: list[Anomaly] = field(default_factory=list)
    requires_manual_review: bool = False
    fetch_result: FetchResult | None = None
    content_method: str = METHOD_FALLBACK
    source_kind: SourceKind = SourceKind.WEBPAGE
    source_url: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "info": self.info.to_dict(),
            "validation": {
                "valid": self.validation.valid,
                "confidence": self.validation.confidence,
                "reason": self.validation.reason,
                "warnings": list(self.validation.warnings),
            },
            "anomalies": [
                {"type": a.type.value, "severity": a.severity.value, "message": a.message}
                for a in self.anomalies
            ],
            "requires_manual_review": self.requires_manual_review,
            "fetch_method": self.fetch_result.method.value if self.fetch_result else None,
            "content_method": self.content_method,
            "source_kind": self.source_kind.value,
            "source_url": self.source_url,
        }


def extract_from_domain(url: str) -> ExtractedInfo:
    """
    Identity guessed from a URL when the completion gives none.

    >>> extract_from_domain("https://www.acme.com/releases").manufacturer
    'Acme'
    """
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        host = ""
    if host.startswith("www."):
        host = host[4:]
    label = host.split(".")[0] if host else ""
    manufacturer = label[:1].upper() + label[1:] if label else UNKNOWN_MANUFACTURER
    return ExtractedInfo(manufacturer=manufacturer, category=FALLBACK_CATEGORY)


def _same_page(a: str, b: str) -> bool:
    return a.rstrip("/").lower() == b.rstrip("/").lower()


class ExtractionOrchestrator:
    """
    Coordinates acquisition, completion and assessment for one product.

    Collaborators are injected; only completion and escalator are
    required.

    Example:
        >>> orchestrator = ExtractionOrchestrator(client, escalator, settings)
        >>> outcome = await orchestrator.extract(ExtractionRequest(
        ...     name="Acme Widget",
        ...     website="https://acme.example",
        ...     version_url="https://acme.example/releases",
        ... ))
        >>> outcome.info.current_version
        '4.2.1'
    """

    def __init__(
        self,
        completion: CompletionService,
        escalator: FetchEscalator,
        settings: Settings | None = None,
        pattern_learner: PatternLearner | None = None,
        history_store: VersionHistoryStore | None = None,
        quirks: QuirkRegistry | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.completion = completion
        self.escalator = escalator
        self.settings = settings or Settings()
        self.pattern_learner = pattern_learner
        self.history_store = history_store
        self.quirks = quirks
        self.client = client

    def _plan(self, request: ExtractionRequest) -> tuple[ScrapingStrategy | None, FetchMethod | None]:
        if request.strategy is not None:
            return request.strategy, None
        if self.pattern_learner is None:
            return None, None
        pattern = self.pattern_learner.find_best_pattern(request.target_url)
        if pattern is None:
            return None, None
        logger.info(
            f"Using learned pattern for {pattern.domain} "
            f"({pattern.success_rate}% success, method={pattern.method.value if pattern.method else 'any'})")
        return pattern.strategy, pattern.method

    async def _acquire(
        self,
        request: ExtractionRequest,
        kind: SourceKind,
        strategy: ScrapingStrategy | None,
        starting_method: FetchMethod | None,
    ) -> SourceContent:
        url = request.target_url
        try:
            return await acquire_source(
                url,
                kind,
                self.escalator,
                client=self.client,
                settings=self.settings.sources,
                strategy=strategy,
                starting_method=starting_method,
                forum_config=request.forum_config,
            )
        except VersionVaultError as e:
            logger.warning(f"Acquisition of {url} failed: {e}")
            return SourceContent(url=url, kind=kind, text="", method=kind.value, success=False)

    def _window(self, text: str, product_name: str, max_chars: int) -> SmartContent:
        cfg = self.settings.windowing
        return extract_smart_content(
            text,
            product_name,
            max_chars=max_chars,
            window_size=cfg.window_size,
            max_windows=cfg.max_windows,
            version_first=cfg.version_first,
        )

    async def _main_site_text(self, request: ExtractionRequest) -> str:
        if not request.version_url or _same_page(request.version_url, request.website):
            return ""
        content = await fetch_webpage_text(
            request.website,
            self.escalator,
            min_region_chars=self.settings.sources.min_region_chars,
        )
        return content.text

    async def _complete(self, request: ExtractionRequest, version_content: str, main_content: str) -> ParsedCompletion | None:
        prompt = build_extraction_prompt(
            name=request.name,
            website=request.website,
            version_url=request.target_url,
            version_content=version_content,
            main_content=main_content,
            description=request.description,
        )
        try:
            raw = await self.completion.complete(prompt["system"], prompt["user"])
            return parse_completion(raw)
        except CompletionAuthenticationError:
            raise
        except CompletionError as e:
            logger.warning(f"Completion for '{request.name}' unusable, falling back to domain identity: {e}")
            return None

    def _check_version_patterns(
        self,
        request: ExtractionRequest,
        manufacturer: str,
        page_text: str,
        window: SmartContent,
        versions: list[VersionEntry],
    ) -> list[VersionEntry]:
        """
        Seed or cross-check versions with known version formats.

        A product with a known pattern gets an empty list seeded from the
        page. Otherwise the generic pass only cross-checks what the
        completion returned.
        """
        log = get_logger_with_context(__name__, product=request.name)
        pattern = get_pattern_for_product(manufacturer, request.name)
        if pattern is not None:
            match = extract_version_with_pattern(page_text, pattern)
            for warning in match.warnings:
                log.debug(warning)
            found = match.version
        elif window.found_product:
            found = extract_version_generic(window.content)
        else:
            found = None

        if not found:
            return versions
        if not versions:
            if pattern is None:
                return versions
            log.info(f"No versions from completion, seeding {found} from the {pattern.product_name} pattern")
            return [VersionEntry(version=found)]
        if not any(compare_versions(found, entry.version) == 0 for entry in versions):
            log.warning(f"Page suggests version {found}, not among the {len(versions)} extracted")
        return versions

    async def _fetch_text(self, url: str) -> str:
        """
        Page text for follow-up fetches made by quirks.

        Raises:
            BlockedError: The page stayed behind bot protection
            FetchError: The page could not be fetched
        """
        content = await fetch_webpage_text(
            url, self.escalator, min_region_chars=self.settings.sources.min_region_chars)
        if content.success:
            return content.text
        blocker = content.fetch_result.blocker_detected if content.fetch_result else None
        if blocker is not None and blocker.is_blocked:
            raise BlockedError(
                f"Blocked by {blocker.blocker_type.value}",
                blocker_type=blocker.blocker_type.value,
                url=url,
            )
        raise FetchError(f"No usable content from {url}", url=url)

    def _learn(self, request: ExtractionRequest, source: SourceContent, info: ExtractedInfo,
               strategy: ScrapingStrategy | None) -> None:
        if self.pattern_learner is None or source.fetch_result is None:
            return
        succeeded = source.success and bool(info.current_version)
        confidence = info.confidence or 0
        if succeeded and confidence >= 70:
            self.pattern_learner.learn_from_success(
                source.url,
                strategy,
                source.fetch_result.method,
                confidence,
                product_name=request.name,
            )
        else:
            self.pattern_learner.record_attempt(source.url, succeeded)

    def _previous(self, request: ExtractionRequest) -> VersionSnapshot | None:
        if request.previous is not None:
            return request.previous
        if self.history_store is None:
            return None
        try:
            return self.history_store.latest(request.key)
        except StorageError as e:
            logger.warning(f"Could not read history for '{request.key}': {e}")
            return None

    def _persist(self, request: ExtractionRequest, info: ExtractedInfo, source_url: str) -> None:
        if self.history_store is None or not info.current_version:
            return
        try:
            self.history_store.record(request.key, info, source_url)
        except StorageError as e:
            logger.error(f"Could not store history for '{request.key}': {e}")

    async def extract(self, request: ExtractionRequest) -> ExtractionOutcome:
        """
        Extract version information for one product.

        Raises:
            ExtractionError: If the request has no product name or URL
            CompletionAuthenticationError: If the completion service
                rejects its credentials
        """
        if not request.name.strip() or not request.target_url:
            raise ExtractionError(
                "Extraction request needs a product name and a URL",
                details={"name": request.name, "url": request.target_url},
            )

        url = request.target_url
        log = get_logger_with_context(__name__, product=request.name, url=url)

        strategy, starting_method = self._plan(request)
        kind = detect_source_kind(url, request.source_kind)

        source = await self._acquire(request, kind, strategy, starting_method)
        if not source.success:
            log.warning(f"Acquisition incomplete ({source.method}), continuing with {len(source.text)} chars")

        windowing = self.settings.windowing
        version_window = self._window(source.text, request.name, windowing.version_page_max_chars)
        main_text = await self._main_site_text(request)
        main_window = self._window(main_text, request.name, windowing.main_site_max_chars) if main_text else None

        parsed = await self._complete(
            request,
            version_window.content,
            main_window.content if main_window else "",
        )
        identity = extract_from_domain(request.website or url)
        if parsed is None:
            info = identity
        else:
            info = parsed.to_extracted(identity.manufacturer, identity.category)

        if source.versions:
            log.info(f"Using {len(source.versions)} structured versions from {source.method}")
            info.versions = list(source.versions)

        versions = sort_versions(info.versions)
        versions = deduplicate_versions(versions, request.name)
        versions = filter_by_branch(versions, source.url)
        versions = await apply_quirks(source.url, versions, self._fetch_text, self.quirks)
        versions = sort_versions(versions)
        if self.settings.extraction.pattern_prepass:
            versions = self._check_version_patterns(
                request, info.manufacturer, source.text, version_window, versions)
        info.versions = versions

        current = pick_current_version(
            versions, request.name, skip_prereleases=self.settings.extraction.skip_prereleases)
        if current is not None:
            info.current_version = current.version
            info.release_date = current.release_date
        info.extraction_method = source.method

        page_text = source.text if not main_text else f"{source.text}\n\n{main_text}"
        validation = validate_extraction(
            request.name,
            info,
            page_text,
            source_url=source.url,
            settings=self.settings.validation,
        )
        if not validation.valid:
            log.info(f"Validation concerns: {validation.reason}")

        anomalies = detect_anomalies(
            VersionSnapshot.from_extracted(info),
            self._previous(request),
            settings=self.settings.anomaly,
        )

        self._learn(request, source, info, strategy)
        self._persist(request, info, source.url)

        log.info(
            f"Extracted version {info.current_version or 'none'} "
            f"({len(info.versions)} releases, confidence {validation.confidence})")

        return ExtractionOutcome(
            info=info,
            validation=validation,
            anomalies=anomalies,
            requires_manual_review=requires_manual_review(anomalies),
            fetch_result=source.fetch_result,
            content_method=version_window.method,
            source_kind=source.kind,
            source_url=source.url,
        )
