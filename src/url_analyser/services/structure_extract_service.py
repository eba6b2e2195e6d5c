from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Dict, Iterator, Optional

from url_analyser.errors import UnparseableHref
from url_analyser.model import HeadingsCount, LinksCount
from url_analyser.services.token_stream_service import Token, Tokenizer, TokenType
from url_analyser.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

NO_DOCTYPE = "Document contains no doctype element"
NO_TITLE = "Document contains no title element"
UNRECOGNISED_DOCTYPE = "Unrecognised doctype"

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

# Public identifiers of the pre-HTML5 DTDs, followed by the version number.
_LEGACY_DOCTYPES = (
    ("-//w3c//dtd html", "HTML"),
    ("-//w3c//dtd xhtml", "XHTML"),
)
_VERSION_RE = re.compile(r"\s+(\d+(?:\.\d+)?)")


class StructureExtractService:
    """
    Read-only scans over a validated HTML document.
    Each method opens its own token stream, so the scans are independent
    and may run in any order or in parallel. The document is expected to have
    passed validate_document(); a terminal token simply ends a scan.
    """

    def __init__(
            self,
            document: str,
            source_url: str,
            tokenizer: Tokenizer,
            log: Optional[logging.Logger] = None,
    ):
        self.document = document
        self.source_url = source_url
        self.tokenizer = tokenizer
        self.logger = log or logger

    def _tokens(self) -> Iterator[Token]:
        for token in self.tokenizer.new_stream(self.document):
            if token.is_terminal:
                return
            yield token

    # -------- Doctype --------

    @staticmethod
    def classify_doctype(payload: str) -> str:
        """Maps the text of a doctype declaration to a version label."""
        value = payload.strip().lower()
        if value == "html":
            return "HTML 5.0"

        for prefix, label in _LEGACY_DOCTYPES:
            index = value.find(prefix)
            if index < 0:
                continue
            match = _VERSION_RE.match(value, index + len(prefix))
            if match:
                return f"{label} {match.group(1)}"
            break

        if not payload.strip():
            return UNRECOGNISED_DOCTYPE
        return f"{UNRECOGNISED_DOCTYPE}: {payload.strip()}"

    def extract_html_version(self) -> str:
        self.logger.debug("extract_html_version START")
        version = NO_DOCTYPE
        for token in self._tokens():
            if token.type is TokenType.DOCTYPE:
                version = self.classify_doctype(token.data)
                break
        self.logger.debug("extract_html_version DONE: %s", version)
        return version

    # -------- Title --------

    def extract_page_title(self) -> str:
        """Returns the text of the first <title> element."""
        self.logger.debug("extract_page_title START")
        tokens = self._tokens()
        title = NO_TITLE
        for token in tokens:
            if token.is_opening_tag and token.data.startswith("title"):
                following = next(tokens, None)
                if following is not None and following.type is TokenType.TEXT:
                    title = following.data.strip()
                else:
                    title = ""
                break
        self.logger.debug("extract_page_title DONE")
        return title

    # -------- Headings --------

    def count_headings(self) -> HeadingsCount:
        self.logger.debug("count_headings START")
        counts: Counter = Counter()
        for token in self._tokens():
            if token.is_opening_tag and token.data in HEADING_TAGS:
                counts[token.data] += 1
        self.logger.debug("count_headings DONE")
        return HeadingsCount.from_counts(counts)

    # -------- Links --------

    def count_links(self) -> LinksCount:
        """Classifies every anchor with a non-empty href as internal or external."""
        self.logger.debug("count_links START")
        counts: Counter = Counter()
        for token in self._tokens():
            if not (token.is_opening_tag and token.data == "a"):
                continue
            href = (token.get_attr("href") or "").strip()
            if not href:
                # <a> tag without href is not a link
                continue
            try:
                external = UrlUtils.is_external_link(self.source_url, href)
            except UnparseableHref as e:
                self.logger.info("Whilst counting internal/external links, skipped %s", e)
                continue
            counts["external" if external else "internal"] += 1
        self.logger.debug("count_links DONE")
        return LinksCount(internal=counts["internal"], external=counts["external"])

    # -------- Login form --------

    def has_login_form(self) -> bool:
        """
        Best effort: a page is assumed to contain a login form if it has input
        elements of type 'password' and 'submit' anywhere in the document.
        """
        self.logger.debug("has_login_form START")
        has_password = has_submit = False
        for token in self._tokens():
            if not (token.is_opening_tag and token.data.startswith("input")):
                continue
            input_type = (token.get_attr("type") or "").strip().lower()
            if input_type == "password":
                has_password = True
            elif input_type == "submit":
                has_submit = True
            if has_password and has_submit:
                break
        self.logger.debug("has_login_form DONE")
        return has_password and has_submit

    def extract_all(self) -> Dict[str, Any]:
        return {
            "html_version": self.extract_html_version(),
            "page_title": self.extract_page_title(),
            "headings": self.count_headings(),
            "links_by_type": self.count_links(),
            "login_form": self.has_login_form(),
        }
