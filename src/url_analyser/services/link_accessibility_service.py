# src/url_analyser/services/link_accessibility_service.py
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from tqdm.auto import tqdm

from url_analyser.errors import ProbeFailure, UnparseableHref
from url_analyser.model import ProbeResult
from url_analyser.services.token_stream_service import Tokenizer
from url_analyser.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], Awaitable[ProbeResult]]


class LinkAccessibilityService:
    """
    Counts the hyperlinks of a page that cannot be reached.

    One probe task is started per link; concurrency is bounded by a semaphore.
    Every task reports exactly one boolean on a queue and the aggregator
    waits for one message per task, so no result is lost or counted twice.
    """

    def __init__(
            self,
            source_url: str,
            fetch: FetchFn,
            *,
            concurrency: int = 20,
            probe_timeout: Optional[float] = 10.0,
            overall_timeout: Optional[float] = None,
            show_progress: bool = False,
            log: Optional[logging.Logger] = None,
    ):
        self.source_url = source_url
        self.fetch = fetch
        self.concurrency = max(1, concurrency)
        self.probe_timeout = probe_timeout
        self.overall_timeout = overall_timeout
        self.show_progress = show_progress
        self.logger = log or logger
        self._semaphore: Optional[asyncio.Semaphore] = None

    def collect_links(self, tokenizer: Tokenizer, document: str) -> Tuple[List[str], int]:
        """
        Sequential scan for anchors to probe.
        Returns the absolute URLs to check and the number of hrefs that could not be parsed.
        """
        urls: List[str] = []
        unparseable = 0
        for token in tokenizer.new_stream(document):
            if token.is_terminal:
                break
            if not (token.is_opening_tag and token.data == "a"):
                continue
            href = (token.get_attr("href") or "").strip()
            if not href or UrlUtils.is_fragment_only(href):
                continue
            try:
                url = UrlUtils.resolve(self.source_url, href)
            except UnparseableHref as e:
                self.logger.info("Encountered unparseable URL in href: %s", e)
                unparseable += 1
                continue
            if not UrlUtils.is_web_url(url):
                # mailto:, tel:, javascript: and other non-http(s) links are neither probed nor counted
                self.logger.debug("Not probing non-web link %s", url)
                continue
            urls.append(url)
        return urls, unparseable

    async def _probe_worker(self, url: str, channel: asyncio.Queue) -> None:
        accessible = False
        try:
            async with self._semaphore:
                result = await asyncio.wait_for(self.fetch(url), timeout=self.probe_timeout)
            accessible = result.is_accessible
            if not accessible:
                self.logger.info("%s", ProbeFailure(url, result.status_code, result.error))
        except asyncio.TimeoutError:
            self.logger.info("%s", ProbeFailure(url, error=f"no response within {self.probe_timeout}s"))
        except Exception as e:
            # A failing probe must not abort the analysis; it counts as inaccessible.
            self.logger.warning("%s", ProbeFailure(url, error=f"{type(e).__name__}: {e}"))
        await channel.put(accessible)

    async def count_inaccessible(self, tokenizer: Tokenizer, document: str) -> int:
        urls, unparseable = self.collect_links(tokenizer, document)
        expected = len(urls)
        self.logger.info("Checking accessibility of %d links (%d unparseable)", expected, unparseable)

        self._semaphore = asyncio.Semaphore(self.concurrency)
        channel: asyncio.Queue = asyncio.Queue()
        tasks = [asyncio.create_task(self._probe_worker(url, channel)) for url in urls]

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.overall_timeout if self.overall_timeout is not None else None
        received = 0
        inaccessible = unparseable
        timed_out = False

        with tqdm(total=expected, desc="Checking links", unit="link", disable=not self.show_progress) as bar:
            try:
                while received < expected:
                    remaining = None if deadline is None else max(0.0, deadline - loop.time())
                    try:
                        accessible = await asyncio.wait_for(channel.get(), timeout=remaining)
                    except asyncio.TimeoutError:
                        timed_out = True
                        break
                    received += 1
                    if not accessible:
                        inaccessible += 1
                    bar.update(1)
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

        if timed_out:
            # Probes that finished while the tasks were being cancelled still count normally.
            while not channel.empty():
                received += 1
                if not channel.get_nowait():
                    inaccessible += 1
            outstanding = expected - received
            self.logger.warning(
                "Overall probe deadline of %ss reached, counting %d outstanding links as inaccessible",
                self.overall_timeout, outstanding,
            )
            inaccessible += outstanding

        self.logger.info("Found %d inaccessible links", inaccessible)
        return inaccessible
