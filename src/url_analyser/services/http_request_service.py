# src/url_analyser/services/http_request_service.py
import asyncio
import logging
import time
from typing import Dict, Optional

import aiohttp

from url_analyser.model import AnalyserSettings, ProbeResult
from url_analyser.services.generate_default_user_agent_service import generate_default_user_agent

logger = logging.getLogger(__name__)


class HttpRequestService:
    """
    Central service for executing HTTP requests.
    Owns the aiohttp session used for fetching the analysed page and for probing its links.
    """

    def __init__(self, settings: Optional[AnalyserSettings] = None, user_agent: Optional[str] = None):
        self.settings = settings or AnalyserSettings()
        self.user_agent = user_agent or self.settings.user_agent or generate_default_user_agent()
        self.timeout = self.settings.page_timeout
        self.max_redirects = self.settings.max_redirects
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            timeout_obj = aiohttp.ClientTimeout(total=self.timeout)
            default_headers = {
                'Accept-Encoding': 'gzip, deflate',
                'User-Agent': self.user_agent
            }
            self.session = aiohttp.ClientSession(
                timeout=timeout_obj, headers=default_headers
            )
            logger.debug("HttpRequestService: Session initialized.")

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("HttpRequestService: Session closed.")

    # =========================================================================
    #  GET REQUEST LOGIC (Page Fetching)
    # =========================================================================
    async def fetch_page(self, url: str) -> Dict:
        """
        Downloads the page to analyse, following redirects.
        Returns a dict with 'status', 'content', 'final_url' and 'error'.
        Network failures give a negative status instead of raising.
        """
        await self.initialize()
        start_time = time.perf_counter()
        try:
            async with self.session.get(
                    url,
                    allow_redirects=True,
                    max_redirects=self.max_redirects,
            ) as response:
                content = await self._read_content(response, url)
                result = {
                    "status": response.status,
                    "content": content,
                    "final_url": str(response.url),
                    "content_type": response.headers.get("Content-Type", ""),
                    "error": None,
                }
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            result = {"status": -1, "content": None, "final_url": url, "content_type": "", "error": str(e) or type(e).__name__}
        except ValueError as e:
            result = {"status": -2, "content": None, "final_url": url, "content_type": "", "error": str(e)}

        result["elapsed_time"] = round(time.perf_counter() - start_time, 4)
        logger.debug("GET %s -> %s in %.3fs", url, result["status"], result["elapsed_time"])
        return result

    @staticmethod
    async def _read_content(response: aiohttp.ClientResponse, url: str) -> str:
        """Reads the response body as text, replacing undecodable bytes."""
        try:
            return await response.text()
        except UnicodeDecodeError:
            logger.debug("Falling back to lenient decoding for %s", url)
            content_bytes = await response.read()
            return content_bytes.decode('utf-8', errors='replace')

    # =========================================================================
    #  HEAD REQUEST LOGIC (Link Checking)
    # =========================================================================
    async def probe(self, url: str) -> ProbeResult:
        """
        Lightweight reachability check: HEAD, retried as GET when the
        server does not allow HEAD. The status is that of the final redirect target.
        """
        await self.initialize()
        try:
            status = await self._request_status(url, "HEAD")
            if status in (405, 501):
                logger.debug("HEAD not allowed for %s, retrying with GET", url)
                status = await self._request_status(url, "GET")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return ProbeResult(url=url, error=str(e) or type(e).__name__)
        except ValueError as e:
            return ProbeResult(url=url, error=str(e))
        return ProbeResult(url=url, status_code=status)

    async def _request_status(self, url: str, method: str) -> int:
        async with self.session.request(
                method,
                url,
                allow_redirects=True,
                max_redirects=self.max_redirects,
                timeout=aiohttp.ClientTimeout(total=self.settings.probe_timeout),
        ) as response:
            return response.status
