"""
Per-gene acquisition pipeline.

Drives one browser page through the orthobrowser workflow for a single gene:
search, autocomplete, submit, then either take alignment data already seen on
the network or open Export → MSA and resolve the exported text from the
capture channels. Every attempt ends in an artifact or a failure marker.
"""

import logging
import time
from typing import Optional

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..browser.selectors import EXPORT_STRATEGIES, MSA_STRATEGIES, activate
from ..config import SystemConfig, get_config
from ..errors import (
    ErrorHandler,
    ErrorInfo,
    MSACollectorError,
    StructuralError,
    DataQualityError,
    TransientUIError,
    create_error_context,
    get_error_handler
)
from ..logging_config import log_error_with_context
from ..models.entities import AttemptOutcome, CaptureResult, CaptureSource, Gene
from ..models.validation import MSADataValidator
from ..storage import ArtifactStorage
from .capture import CaptureState, NetworkObserver, resolve_capture


SEARCH_INPUT = "#searchInput"
AUTOCOMPLETE_ITEM = ".ui-autocomplete .ui-menu-item"
SUBMIT_BUTTON = 'button[type="submit"]'
MSA_OPTION = "#msa_button, .export-button"


class GeneAcquisitionPipeline:
    """
    Search-and-export workflow for one gene on one page.

    A pipeline instance holds no per-gene state; each attempt builds its own
    CaptureState and network observer and removes the observer when done.
    """

    def __init__(self,
                 storage: ArtifactStorage,
                 config: Optional[SystemConfig] = None,
                 validator: Optional[MSADataValidator] = None,
                 error_handler: Optional[ErrorHandler] = None):
        """
        Initialize pipeline.

        Args:
            storage: Where artifacts and failure markers are written
            config: System configuration, the global one if not provided
            validator: MSA data classifier
            error_handler: Error classifier, the global one if not provided
        """
        self.config = config or get_config()
        self.storage = storage
        self.validator = validator or MSADataValidator(self.config.capture.classifier_min_length)
        self.error_handler = error_handler or get_error_handler()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def capture_config(self):
        return self.config.capture

    @property
    def browser_config(self):
        return self.config.browser

    async def process_gene(self, page: Page, gene: Gene) -> bool:
        """
        Run one attempt for ``gene``; True when an artifact was written.

        A failed attempt always leaves the failure marker, including attempts
        that ended in an exception.
        """
        outcome = await self.attempt(page, gene)
        if not outcome.success and not outcome.marker_written:
            try:
                self.storage.save_failure_marker(gene)
            except MSACollectorError as e:
                log_error_with_context(self.logger, e, "save_failure_marker", gene_name=gene.name)
        return outcome.success

    async def attempt(self, page: Page, gene: Gene, attempt_number: int = 1) -> AttemptOutcome:
        """
        Run the full workflow once.

        Exceptions raised by any step are classified and returned as a failed
        outcome so the retry controller can decide what to do next.
        """
        self.logger.info(
            "Processing gene: %s (ID: %s) - Attempt %d",
            gene.name, gene.id, attempt_number,
            extra={"gene_name": gene.name, "gene_id": gene.id, "attempt": attempt_number}
        )
        state = CaptureState(gene=gene)
        started = time.monotonic()

        try:
            async with NetworkObserver(page, state, self.validator, self.capture_config):
                outcome = await self._run_workflow(page, gene, state, attempt_number)
        except Exception as e:
            context = create_error_context(
                "process_gene",
                gene_name=gene.name,
                gene_id=gene.id,
                attempt=attempt_number,
                page_url=page.url
            )
            outcome = AttemptOutcome(
                success=False,
                gene=gene,
                attempt=attempt_number,
                error=self.error_handler.handle_error(e, context)
            )

        self.logger.debug(
            "Attempt finished in %.1fs",
            time.monotonic() - started,
            extra={
                "gene_name": gene.name,
                "attempt": attempt_number,
                "success": outcome.success,
                "requests_seen": len(state.request_urls),
                "responses_seen": state.responses_seen
            }
        )
        return outcome

    async def _run_workflow(self,
                            page: Page,
                            gene: Gene,
                            state: CaptureState,
                            attempt_number: int) -> AttemptOutcome:
        await self._search(page, gene)

        # Let the results load; ends early only for a payload large enough to skip Export
        await state.wait_for_network_data(
            self.capture_config.settle_timeout_ms,
            self.capture_config.network_short_circuit_length
        )

        network_text = state.network_data(self.capture_config.network_short_circuit_length)
        if network_text is not None:
            self.logger.info("Using MSA data from network interception (no UI interaction needed)")
            return self._succeed(gene, CaptureResult(network_text, CaptureSource.NETWORK), attempt_number)

        self.logger.debug("Looking for Export dropdown...")
        export_match = await activate(page, EXPORT_STRATEGIES)
        if export_match is None:
            fallback_text = state.network_data(self.capture_config.network_fallback_length)
            if fallback_text is not None:
                self.logger.info("Export dropdown missing, using available network data as fallback")
                return self._succeed(gene, CaptureResult(fallback_text, CaptureSource.NETWORK), attempt_number)
            return self._fail(
                gene, attempt_number,
                StructuralError("Export dropdown not found and no usable network data")
            )

        await self._wait_for_dropdown(page)

        msa_match = await activate(page, MSA_STRATEGIES)
        if msa_match is None:
            return self._fail(gene, attempt_number, StructuralError("MSA export option not found"))

        # The export writes to the clipboard, which raises no event to wait on
        await state.wait_for_network_data(self.capture_config.export_wait_ms)

        capture = await resolve_capture(page, state, self.capture_config)
        if capture is None or not capture.text.strip():
            return self._fail(gene, attempt_number, StructuralError("No MSA data retrieved"))

        verdict = self.validator.validate(capture.text)
        if not verdict.is_valid:
            return self._fail(
                gene, attempt_number,
                DataQualityError(
                    f"Retrieved {capture.source.value} data appears to be binary or invalid: "
                    f"{verdict.error_message}"
                )
            )

        return self._succeed(gene, capture, attempt_number)

    async def _search(self, page: Page, gene: Gene) -> None:
        """Load the application, type the gene's search token and submit."""
        try:
            await page.goto(
                self.browser_config.base_url,
                wait_until="networkidle",
                timeout=self.browser_config.navigation_timeout_ms
            )
            await page.wait_for_selector(
                SEARCH_INPUT,
                state="visible",
                timeout=self.browser_config.selector_timeout_ms
            )
        except PlaywrightTimeoutError as e:
            raise TransientUIError(
                f"Search page did not become ready: {e}",
                context=create_error_context("search", gene_name=gene.name, gene_id=gene.id),
                original_exception=e
            ) from e

        await page.fill(SEARCH_INPUT, "")
        await page.type(SEARCH_INPUT, gene.search_token, delay=self.browser_config.typing_delay_ms)

        await self._pick_autocomplete(page)

        await page.click(SUBMIT_BUTTON)

    async def _pick_autocomplete(self, page: Page) -> bool:
        """Select the first suggestion if one shows up; its absence is not an error."""
        try:
            item = await page.wait_for_selector(
                AUTOCOMPLETE_ITEM,
                state="visible",
                timeout=self.capture_config.autocomplete_timeout_ms
            )
        except PlaywrightTimeoutError:
            self.logger.info("Autocomplete not found, trying direct search...")
            return False

        if item is None:
            return False

        await item.click()
        self.logger.debug("Clicked autocomplete result")
        return True

    async def _wait_for_dropdown(self, page: Page) -> None:
        try:
            await page.wait_for_selector(
                MSA_OPTION,
                state="attached",
                timeout=self.capture_config.dropdown_timeout_ms
            )
        except PlaywrightTimeoutError:
            self.logger.debug("Export dropdown did not render in time, probing anyway")

    def _succeed(self, gene: Gene, capture: CaptureResult, attempt_number: int) -> AttemptOutcome:
        self.storage.save_artifact(gene, capture.text)
        return AttemptOutcome(
            success=True,
            gene=gene,
            attempt=attempt_number,
            capture_source=capture.source
        )

    def _fail(self, gene: Gene, attempt_number: int, error: MSACollectorError) -> AttemptOutcome:
        """Write the failure marker and report a failed attempt without raising."""
        self.storage.save_failure_marker(gene)
        context = create_error_context(
            "process_gene",
            gene_name=gene.name,
            gene_id=gene.id,
            attempt=attempt_number
        )
        error_info: ErrorInfo = self.error_handler.handle_error(error, context)
        return AttemptOutcome(
            success=False,
            gene=gene,
            attempt=attempt_number,
            error=error_info,
            marker_written=True
        )
