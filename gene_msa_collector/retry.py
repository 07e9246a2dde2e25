"""
Retry controller for per-gene acquisition.

Wraps the acquisition pipeline in a bounded number of attempts with a delay
between them. A gene that fails every attempt is left with a failure marker
and exactly one entry in the failure log.
"""

import asyncio
import logging
from typing import Optional, TYPE_CHECKING

from .config import RetryConfig, get_config
from .errors import ErrorAction, MSACollectorError
from .logging_config import log_error_with_context
from .models.entities import AttemptOutcome, Gene
from .storage import ArtifactStorage

if TYPE_CHECKING:
    from playwright.async_api import Page
    from .collector.pipeline import GeneAcquisitionPipeline


class RetryController:
    """
    Bounded retry loop around single pipeline attempts.

    Per-gene failures never escape ``acquire``; they are turned into the
    failure marker and failure log entry instead. Errors classified as
    ``ErrorAction.ABORT`` (configuration problems, a browser that cannot be
    driven) are re-raised so the run stops.
    """

    def __init__(self, config: Optional[RetryConfig] = None, storage: Optional[ArtifactStorage] = None):
        """
        Initialize retry controller with configuration.

        Args:
            config: RetryConfig instance with retry parameters
            storage: Storage used to persist exhausted genes
        """
        self.config = config or get_config().retry
        self.storage = storage or ArtifactStorage.from_config(get_config().run)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay before the next attempt.

        Args:
            attempt: Number of attempts already made minus one (0-based)

        Returns:
            Delay in seconds, capped at max_delay
        """
        delay = self.config.initial_delay * (self.config.backoff_multiplier ** attempt)
        return max(0.0, min(delay, self.config.max_delay))

    def log_retry_attempt(self, gene: Gene, attempt: int, error_message: str, delay: float) -> None:
        """
        Log a failed attempt that will be retried.

        Args:
            gene: Gene being acquired
            attempt: Attempt that just failed (1-based)
            error_message: Why the attempt failed
            delay: Delay before next attempt
        """
        self.logger.warning(
            "Retrying %s (%d/%d)...",
            gene.name,
            attempt,
            self.config.max_attempts,
            extra={
                "gene_name": gene.name,
                "gene_id": gene.id,
                "attempt_number": attempt,
                "max_attempts": self.config.max_attempts,
                "delay_seconds": delay,
                "error_message": error_message
            }
        )

    def log_final_failure(self, gene: Gene, error_message: str) -> None:
        """
        Log final failure after all attempts are exhausted.

        Args:
            gene: Gene that could not be acquired
            error_message: Error of the last attempt
        """
        self.logger.error(
            "Failed to process %s after %d attempts",
            gene.name,
            self.config.max_attempts,
            extra={
                "gene_name": gene.name,
                "gene_id": gene.id,
                "max_attempts": self.config.max_attempts,
                "error_message": error_message,
                "final_failure": True
            }
        )

    async def acquire(self, page: "Page", gene: Gene, pipeline: "GeneAcquisitionPipeline") -> bool:
        """
        Acquire one gene with retries.

        Args:
            page: Browser page shared by the run
            gene: Gene to acquire
            pipeline: Pipeline that performs a single attempt

        Returns:
            True if an artifact was written, False once attempts are exhausted
        """
        max_attempts = max(1, self.config.max_attempts)
        outcome: Optional[AttemptOutcome] = None

        for attempt in range(1, max_attempts + 1):
            outcome = await pipeline.attempt(page, gene, attempt)
            if outcome.success:
                if attempt > 1:
                    self.logger.info(
                        "Gene %s succeeded on attempt %d",
                        gene.name,
                        attempt,
                        extra={"gene_name": gene.name, "attempt": attempt}
                    )
                return True

            if outcome.error is not None and outcome.error.action == ErrorAction.ABORT:
                raise outcome.error.original_exception

            if attempt < max_attempts:
                delay = self.calculate_delay(attempt - 1)
                self.log_retry_attempt(gene, attempt, outcome.error_message, delay)
                await asyncio.sleep(delay)

        error_message = outcome.error_message or "Unknown error"
        self.log_final_failure(gene, error_message)

        try:
            if not outcome.marker_written:
                self.storage.save_failure_marker(gene)
            self.storage.record_failure(gene, error_message)
        except (MSACollectorError, OSError) as e:
            log_error_with_context(
                self.logger, e, "persist_failed_gene",
                gene_name=gene.name, gene_id=gene.id
            )
        return False

