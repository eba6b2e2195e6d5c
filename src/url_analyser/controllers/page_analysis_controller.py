import asyncio
import logging
from typing import Callable, Optional

from url_analyser.controllers.analyse_controller import HTMLPageAnalyser
from url_analyser.errors import PageFetchFailure
from url_analyser.model import AnalyserSettings, AnalysisReport
from url_analyser.services.http_request_service import HttpRequestService

logger = logging.getLogger(__name__)


class PageAnalysisController:
    """
    Fetches a page and analyses it with a fresh HTMLPageAnalyser.
    The HTTP session used for the page download is reused for the link probes.
    """

    def __init__(
            self,
            settings: Optional[AnalyserSettings] = None,
            http_service_factory: Callable[[AnalyserSettings], HttpRequestService] = HttpRequestService,
            log: Optional[logging.Logger] = None,
    ):
        self.settings = settings or AnalyserSettings()
        self.http_service_factory = http_service_factory
        self.logger = log or logger

    async def run(self, url: str) -> Optional[AnalysisReport]:
        """
        Returns the report, or None when the page has an empty body.
        Raises PageFetchFailure if no response arrives and ParseFailure if
        the body does not tokenize. The body of any HTTP response is
        analysed, error pages included.
        """
        async with self.http_service_factory(self.settings) as http_service:
            page = await http_service.fetch_page(url)
            status = page.get("status", -99)
            if status < 0:
                self.logger.warning("Failed GET request to URL: %s. Got error: %s", url, page.get("error"))
                raise PageFetchFailure(url, error=page.get("error"))
            if not 200 <= status < 300:
                self.logger.warning("GET request to URL: %s returned status %s, analysing its body anyway", url, status)
            else:
                self.logger.info("Received response from: %s", url)

            document = page.get("content") or ""
            if not document:
                self.logger.info("Received empty response from request to URL: %s", url)
                return None

            analyser = HTMLPageAnalyser(
                document,
                page.get("final_url") or url,
                fetch=http_service.probe,
                settings=self.settings,
                log=self.logger,
            )
            return await analyser.analyse_async()

    def analyse_url(self, url: str) -> Optional[AnalysisReport]:
        return asyncio.run(self.run(url))
