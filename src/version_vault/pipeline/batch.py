"""
Bounded batch runner.

Runs extraction requests in fixed-size groups with a pause between
groups, so a long product list never has more than batch_size pages
in flight against vendor sites or the completion service.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from version_vault.config.settings import BatchSettings
from version_vault.extraction.orchestrator import ExtractionOutcome, ExtractionRequest
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

ExtractFn = Callable[[ExtractionRequest], Awaitable[ExtractionOutcome]]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class BatchItemResult:
    """Outcome of one request; exactly one of outcome and error is set."""

    request: ExtractionRequest
    outcome: ExtractionOutcome | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not None


class BatchRunner:
    """
    Run many extractions with bounded concurrency.

    Example:
        >>> runner = BatchRunner(orchestrator.extract, settings.batch)
        >>> results = await runner.run(requests)
        >>> failed = [r for r in results if not r.ok]
    """

    def __init__(
        self,
        extract: ExtractFn,
        settings: BatchSettings | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.extract = extract
        self.settings = settings or BatchSettings()
        self._sleep = sleep

    async def _run_one(self, request: ExtractionRequest) -> BatchItemResult:
        try:
            outcome = await self.extract(request)
        except Exception as e:
            logger.error(f"Extraction failed for '{request.name}': {e}")
            return BatchItemResult(request=request, error=str(e) or type(e).__name__)
        return BatchItemResult(request=request, outcome=outcome)

    async def run(self, requests: list[ExtractionRequest]) -> list[BatchItemResult]:
        """Results in request order; failures are captured, never raised."""
        size = self.settings.batch_size
        results: list[BatchItemResult] = []
        total_batches = (len(requests) + size - 1) // size

        for index in range(0, len(requests), size):
            batch = requests[index:index + size]
            batch_number = index // size + 1
            logger.info(f"Batch {batch_number}/{total_batches}: {len(batch)} products")

            results.extend(await asyncio.gather(*(self._run_one(r) for r in batch)))

            if index + size < len(requests):
                await self._sleep(self.settings.delay_seconds)

        failures = sum(1 for r in results if not r.ok)
        logger.info(f"Batch run complete: {len(results) - failures} succeeded, {failures} failed")
        return results
