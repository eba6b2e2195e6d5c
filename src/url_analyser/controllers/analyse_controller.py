from __future__ import annotations

import asyncio
import enum
import logging
from typing import Optional

from url_analyser.errors import AnalyserStateError, ParseFailure
from url_analyser.model import AnalyserSettings, AnalysisReport
from url_analyser.services.http_request_service import HttpRequestService
from url_analyser.services.link_accessibility_service import FetchFn, LinkAccessibilityService
from url_analyser.services.structure_extract_service import StructureExtractService
from url_analyser.services.token_stream_service import HTMLTokenizer, Tokenizer, validate_document
from url_analyser.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)


class AnalyserState(enum.Enum):
    CREATED = "created"
    PREPASSED = "prepassed"
    ANALYSING = "analysing"
    DONE = "done"
    FAILED = "failed"


class HTMLPageAnalyser:
    """
    Runs the full suite of structural analyses over one HTML document.

    An instance holds a single document and its source URL and supports
    exactly one analyse() call; create a new instance per page.

    Args:
        document: The raw HTML text.
        source_url: Absolute http(s) URL the document was fetched from.
        tokenizer: Token stream capability; defaults to HTMLTokenizer.
        fetch: Coroutine used to probe links. When omitted an
            HttpRequestService session is opened for the probe phase.
        settings: Prober limits and tokenizer options.
        log: Logger for this analysis; defaults to the module logger.
    """

    def __init__(
            self,
            document: str,
            source_url: str,
            *,
            tokenizer: Optional[Tokenizer] = None,
            fetch: Optional[FetchFn] = None,
            settings: Optional[AnalyserSettings] = None,
            log: Optional[logging.Logger] = None,
    ):
        if not UrlUtils.is_absolute_web_url(source_url):
            raise ValueError(f"source_url must be an absolute http(s) URL, got {source_url!r}")

        self.document = document
        self.source_url = source_url.strip()
        self.settings = settings or AnalyserSettings()
        self.tokenizer = tokenizer or HTMLTokenizer(
            max_token_size=self.settings.max_token_size,
            chunk_size=self.settings.chunk_size,
        )
        self.fetch = fetch
        self.logger = log or logger

        self._state = AnalyserState.CREATED
        self._report: Optional[AnalysisReport] = None

    @property
    def state(self) -> AnalyserState:
        return self._state

    @property
    def report(self) -> Optional[AnalysisReport]:
        return self._report

    def analyse(self) -> AnalysisReport:
        """Synchronous entry point; must not be called from a running event loop."""
        return asyncio.run(self.analyse_async())

    async def analyse_async(self) -> AnalysisReport:
        if self._state is not AnalyserState.CREATED:
            raise AnalyserStateError(
                f"analyse() already ran on this instance (state: {self._state.value})"
            )

        # One initial pass checks that the document tokenizes cleanly. If it does not,
        # every scan would fail too, so we fail fast and run no extractor at all.
        try:
            validate_document(self.tokenizer, self.document, self.logger)
        except ParseFailure:
            self._state = AnalyserState.FAILED
            raise
        self._state = AnalyserState.PREPASSED

        self._state = AnalyserState.ANALYSING
        self.logger.info("Analysing document from %s (%d chars)", self.source_url, len(self.document))

        extractor = StructureExtractService(self.document, self.source_url, self.tokenizer, log=self.logger)
        try:
            structure, inaccessible = await asyncio.gather(
                asyncio.to_thread(extractor.extract_all),
                self._count_inaccessible_links(),
            )
        except BaseException:
            self._state = AnalyserState.FAILED
            raise

        self._report = AnalysisReport(inaccessible_links=inaccessible, **structure)
        self._state = AnalyserState.DONE
        self.logger.info("Analysis of %s DONE", self.source_url)
        return self._report

    async def _count_inaccessible_links(self) -> int:
        if self.fetch is not None:
            return await self._build_prober(self.fetch).count_inaccessible(self.tokenizer, self.document)

        async with HttpRequestService(self.settings) as http_service:
            prober = self._build_prober(http_service.probe)
            return await prober.count_inaccessible(self.tokenizer, self.document)

    def _build_prober(self, fetch: FetchFn) -> LinkAccessibilityService:
        return LinkAccessibilityService(
            self.source_url,
            fetch,
            concurrency=self.settings.concurrency,
            probe_timeout=self.settings.probe_timeout,
            overall_timeout=self.settings.overall_timeout,
            show_progress=self.settings.show_progress,
            log=self.logger,
        )
