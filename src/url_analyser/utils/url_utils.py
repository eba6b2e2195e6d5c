# src/url_analyser/utils/url_utils.py
import logging
from urllib.parse import ParseResult, urldefrag, urljoin, urlparse

from url_analyser.errors import UnparseableHref

logger = logging.getLogger(__name__)

WEB_SCHEMES = ("http", "https")


class UrlUtils:
    """Static helpers for parsing, resolving and classifying hrefs against a page URL."""

    @staticmethod
    def parse_href(href: str) -> ParseResult:
        """
        Parses an href, raising UnparseableHref when urllib rejects it.
        Accessing .port forces validation of the port component.
        """
        try:
            parsed = urlparse(href)
            parsed.port
        except ValueError as e:
            raise UnparseableHref(href, str(e)) from e
        return parsed

    @staticmethod
    def is_fragment_only(href: str) -> bool:
        return href.startswith("#")

    @staticmethod
    def resolve(source_url: str, href: str) -> str:
        """Creates an absolute URL from the page URL and a (possibly relative) href, without fragment."""
        UrlUtils.parse_href(href)
        try:
            absolute_url = urljoin(source_url, href)
            UrlUtils.parse_href(absolute_url)
        except ValueError as e:
            raise UnparseableHref(href, str(e)) from e
        return urldefrag(absolute_url).url

    @staticmethod
    def is_web_url(url: str) -> bool:
        try:
            return urlparse(url).scheme.lower() in WEB_SCHEMES
        except ValueError:
            return False

    @staticmethod
    def is_external_link(source_url: str, href: str) -> bool:
        """
        Resolves the href against the page URL and compares network locations.
        Relative, root-relative and fragment hrefs always resolve to the page's own host.
        """
        resolved = UrlUtils.resolve(source_url, href)
        return urlparse(resolved).netloc.lower() != urlparse(source_url).netloc.lower()

    @staticmethod
    def is_absolute_web_url(url: str) -> bool:
        """Checks that a URL has an http(s) scheme and a host."""
        if not isinstance(url, str):
            logger.debug(f"Invalid URL check: not a string ({type(url).__name__}).")
            return False
        try:
            parsed = UrlUtils.parse_href(url.strip())
        except UnparseableHref:
            return False
        return parsed.scheme.lower() in WEB_SCHEMES and bool(parsed.netloc)
