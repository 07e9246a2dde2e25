"""
Capture channels for exported alignment data.

Three competing sources are composed in priority order: passive network
observation, a clipboard read, and a DOM scan fallback. Network observation
state lives in a CaptureState owned by a single pipeline attempt.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Request, Response

from ..config import CaptureConfig
from ..models.entities import CaptureResult, CaptureSource, Gene
from ..models.validation import MSADataValidator

logger = logging.getLogger(__name__)


EXPORT_URL_MARKERS = ("msa", "export", "fasta")

TEXT_CONTENT_TYPES = ("text/plain", "text/tab-separated-values")

BINARY_CONTENT_TYPES = ("image/", "application/octet-stream", "application/pdf")


READ_CLIPBOARD_SCRIPT = """
async () => {
  try {
    if (window.clipboardData) {
      return window.clipboardData;
    }
    return await navigator.clipboard.readText();
  } catch (err) {
    return null;
  }
}
"""

SCAN_DOM_SCRIPT = """
(minLength) => {
  const nucleotideRun = /[ATCGN-]{10,}|[ACGUN-]{10,}/i;
  const textarea = document.querySelector('textarea');
  if (textarea && textarea.value && textarea.value.includes('>')) {
    return textarea.value;
  }
  const pre = document.querySelector('pre');
  if (pre && pre.textContent && pre.textContent.includes('>')) {
    return pre.textContent;
  }
  for (const el of document.querySelectorAll('*')) {
    const text = el.textContent;
    if (text && text.includes('>') && text.length > minLength && nucleotideRun.test(text)) {
      return text;
    }
  }
  return null;
}
"""


@dataclass
class CaptureState:
    """Network capture state for one gene attempt."""
    gene: Gene
    network_text: Optional[str] = None
    network_url: Optional[str] = None
    request_urls: List[str] = field(default_factory=list)
    responses_seen: int = 0
    captured: asyncio.Event = field(default_factory=asyncio.Event)

    async def wait_for_network_data(self, timeout_ms: int, min_length: int = 0) -> bool:
        """
        Wait up to ``timeout_ms`` for observed text longer than ``min_length``.

        Shorter payloads recorded meanwhile do not end the wait; a later,
        larger response replaces them.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        while self.network_data(min_length) is None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            self.captured.clear()
            try:
                await asyncio.wait_for(self.captured.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                return self.network_data(min_length) is not None
        return True

    def network_data(self, min_length: int = 0) -> Optional[str]:
        """Observed text longer than ``min_length``, if any."""
        if self.network_text is not None and len(self.network_text) > min_length:
            return self.network_text
        return None


def is_export_request_url(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in EXPORT_URL_MARKERS)


def is_candidate_response(url: str, content_type: str) -> bool:
    """Whether a response may carry exported sequence text."""
    url = url.lower()
    content_type = content_type.lower()

    if any(binary in content_type for binary in BINARY_CONTENT_TYPES):
        return False

    return (
        ("msa" in url and ".tsv" in url)
        or "fasta" in url
        or ("export" in url and "text" in content_type)
        or any(text_type in content_type for text_type in TEXT_CONTENT_TYPES)
    )


class NetworkObserver:
    """
    Records export-looking network traffic into a CaptureState.

    Listeners are attached for the duration of one attempt and removed on
    exit, so late responses can only ever write into that attempt's state.
    """

    def __init__(self,
                 page: Page,
                 state: CaptureState,
                 validator: MSADataValidator,
                 config: CaptureConfig):
        self.page = page
        self.state = state
        self.validator = validator
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._attached = False

    async def __aenter__(self) -> "NetworkObserver":
        self.attach()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.detach()

    def attach(self) -> None:
        if self._attached:
            return
        self.page.on("request", self.on_request)
        self.page.on("response", self.on_response)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        self.page.remove_listener("request", self.on_request)
        self.page.remove_listener("response", self.on_response)
        self._attached = False

    def on_request(self, request: Request) -> None:
        if is_export_request_url(request.url):
            self.logger.debug("MSA-related request: %s", request.url)
            self.state.request_urls.append(request.url)

    async def on_response(self, response: Response) -> None:
        url = response.url
        content_type = response.headers.get("content-type", "")

        if not is_candidate_response(url, content_type):
            return

        self.state.responses_seen += 1
        try:
            text = await response.text()
        except (PlaywrightError, UnicodeDecodeError) as e:
            self.logger.debug("Could not read response text from %s: %s", url, e)
            return

        self.logger.debug(
            "Response from %s: %d characters, content-type: %s",
            url, len(text), content_type
        )

        if len(text) > self.config.observe_min_length and self.validator.is_valid(text):
            self.logger.info(
                "MSA data intercepted from network",
                extra={"gene_name": self.state.gene.name, "url": url, "characters": len(text)}
            )
            self.state.network_text = text
            self.state.network_url = url
            self.state.captured.set()


async def read_clipboard(page: Page) -> Optional[str]:
    """Text currently on the page's clipboard, or None if it cannot be read."""
    try:
        return await page.evaluate(READ_CLIPBOARD_SCRIPT)
    except PlaywrightError as e:
        logger.debug("Clipboard read failed: %s", e)
        return None


async def scan_dom(page: Page, min_length: int = 50) -> Optional[str]:
    """First page element that looks like it holds FASTA text."""
    try:
        return await page.evaluate(SCAN_DOM_SCRIPT, min_length)
    except PlaywrightError as e:
        logger.debug("DOM scan failed: %s", e)
        return None


async def resolve_capture(page: Page,
                          state: CaptureState,
                          config: CaptureConfig) -> Optional[CaptureResult]:
    """
    Resolve the exported text after the MSA export was triggered.

    Tries, in order: network interception, clipboard, DOM scan.
    """
    network_text = state.network_data()
    if network_text:
        return CaptureResult(text=network_text, source=CaptureSource.NETWORK)

    clipboard_text = await read_clipboard(page)
    if clipboard_text and len(clipboard_text) >= config.clipboard_min_length:
        logger.debug("Clipboard content length: %d", len(clipboard_text))
        return CaptureResult(text=clipboard_text, source=CaptureSource.CLIPBOARD)

    dom_text = await scan_dom(page, config.dom_min_length)
    if dom_text:
        return CaptureResult(text=dom_text, source=CaptureSource.DOM)

    return None
