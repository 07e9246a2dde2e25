"""
Run orchestration for gene MSA collection.

Sequences every gene through the retry controller on one shared page, paces
requests to the target site, keeps run statistics and reports progress.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from playwright.async_api import Page

from ..browser.session import BrowserSession
from ..config import SystemConfig, get_config
from ..logging_config import log_gene_result, log_run_progress
from ..models.entities import Gene, RunStatistics
from ..retry import RetryController
from ..storage import ArtifactStorage
from .pipeline import GeneAcquisitionPipeline


@dataclass
class RunReport:
    """Terminal report of a collection run."""
    total: int = 0
    success_count: int = 0
    fail_count: int = 0
    elapsed_seconds: float = 0.0
    output_dir: Optional[Path] = None
    failure_log_path: Optional[Path] = None
    failed_genes: List[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage."""
        if self.total == 0:
            return 0.0
        return (self.success_count / self.total) * 100.0

    def to_summary_dict(self) -> Dict[str, Any]:
        """Generate summary dictionary."""
        return {
            "total": self.total,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "success_rate": self.success_rate,
            "elapsed_seconds": self.elapsed_seconds,
            "output_dir": str(self.output_dir) if self.output_dir else None,
            "failure_log_path": str(self.failure_log_path) if self.failure_log_path else None,
            "failed_genes": list(self.failed_genes)
        }


class RunOrchestrator:
    """
    Processes a gene list strictly in order.

    Per-gene failures are contained by the retry controller and only show up
    as counts; anything raised out of the loop aborts the run.
    """

    def __init__(self,
                 config: Optional[SystemConfig] = None,
                 pipeline: Optional[GeneAcquisitionPipeline] = None,
                 retry_controller: Optional[RetryController] = None,
                 storage: Optional[ArtifactStorage] = None):
        """
        Initialize orchestrator.

        Args:
            config: System configuration, the global one if not provided
            pipeline: Single-attempt acquisition pipeline
            retry_controller: Retry wrapper around the pipeline
            storage: Artifact storage shared by pipeline and retry controller
        """
        self.config = config or get_config()
        self.storage = storage or ArtifactStorage.from_config(self.config.run)
        self.pipeline = pipeline or GeneAcquisitionPipeline(self.storage, self.config)
        self.retry_controller = retry_controller or RetryController(self.config.retry, self.storage)
        self.statistics = RunStatistics()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def run(self, page: Page, genes: Sequence[Gene]) -> RunReport:
        """
        Collect every gene in order.

        Args:
            page: Browser page shared by the whole run
            genes: Genes to collect

        Returns:
            Terminal run report
        """
        self.statistics = RunStatistics(total=len(genes))
        failed_genes: List[str] = []
        run_config = self.config.run

        self.logger.info(
            "Found %d genes to process",
            len(genes),
            extra={"total_genes": len(genes), "output_dir": str(self.storage.output_dir)}
        )

        for index, gene in enumerate(genes, start=1):
            self.logger.info("[%d/%d] Processing %s...", index, len(genes), gene.name)
            started = time.monotonic()

            success = await self.retry_controller.acquire(page, gene, self.pipeline)

            self.statistics.record(success)
            if not success:
                failed_genes.append(gene.name)
            log_gene_result(
                self.logger,
                gene.name,
                gene.id,
                success,
                time.monotonic() - started,
                index=index,
                total=len(genes)
            )

            if run_config.progress_interval > 0 and index % run_config.progress_interval == 0:
                self._report_progress()

            if index < len(genes) and run_config.delay_between_genes > 0:
                await asyncio.sleep(run_config.delay_between_genes)

        report = self._build_report(failed_genes)
        self.logger.info(
            "Scraping complete: %d successful, %d failed",
            report.success_count,
            report.fail_count,
            extra=report.to_summary_dict()
        )
        return report

    def _report_progress(self) -> None:
        progress = self.statistics.to_dict()
        log_run_progress(self.logger, progress)

        remaining = self.statistics.estimated_remaining_seconds
        if remaining is not None:
            self.logger.info(
                "Elapsed: %.1f minutes, estimated remaining: %.1f minutes",
                self.statistics.elapsed_seconds / 60,
                remaining / 60
            )

    def _build_report(self, failed_genes: List[str]) -> RunReport:
        failure_log = self.storage.failure_log
        return RunReport(
            total=self.statistics.total,
            success_count=self.statistics.success_count,
            fail_count=self.statistics.fail_count,
            elapsed_seconds=self.statistics.elapsed_seconds,
            output_dir=self.storage.output_dir,
            failure_log_path=failure_log.path if len(failure_log) > 0 else None,
            failed_genes=failed_genes
        )


async def run_collection(genes: Sequence[Gene], config: Optional[SystemConfig] = None) -> RunReport:
    """
    Run a complete collection in a fresh browser session.

    Args:
        genes: Genes to collect
        config: System configuration, the global one if not provided

    Returns:
        Terminal run report

    Raises:
        BrowserLaunchError: If the browser cannot be started
    """
    config = config or get_config()
    storage = ArtifactStorage.from_config(config.run)
    storage.ensure_directories()

    orchestrator = RunOrchestrator(config=config, storage=storage)
    async with BrowserSession(config.browser) as session:
        return await orchestrator.run(session.page, genes)
