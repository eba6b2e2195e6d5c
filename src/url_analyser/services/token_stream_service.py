# src/url_analyser/services/token_stream_service.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Iterable, Iterator, List, Optional, Protocol, Tuple

from url_analyser.errors import ParseFailure

logger = logging.getLogger(__name__)


class TokenType(enum.Enum):
    START_TAG = "start_tag"
    END_TAG = "end_tag"
    SELF_CLOSING_TAG = "self_closing_tag"
    TEXT = "text"
    DOCTYPE = "doctype"
    COMMENT = "comment"
    ERROR = "error"
    EOF = "eof"


TAG_TYPES = (TokenType.START_TAG, TokenType.SELF_CLOSING_TAG)
TERMINAL_TYPES = (TokenType.ERROR, TokenType.EOF)


class TokenizerError(Exception):
    """Raised inside a stream when the document cannot be tokenized to the end."""


@dataclass(frozen=True)
class Token:
    type: TokenType
    data: str = ""
    attrs: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    error: Optional[BaseException] = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_TYPES

    @property
    def is_opening_tag(self) -> bool:
        return self.type in TAG_TYPES

    def get_attr(self, key: str) -> Optional[str]:
        """Returns the value of the first attribute named `key`, if any."""
        for k, v in self.attrs:
            if k == key:
                return v
        return None


class Tokenizer(Protocol):
    def new_stream(self, text: str) -> Iterable[Token]:
        ...


class _TokenCollector(HTMLParser):
    """
    Turns HTMLParser callbacks into Token events.
    Adjacent text callbacks are merged so a run of character data is one TEXT token.
    """

    def __init__(self, max_token_size: int = 0) -> None:
        super().__init__(convert_charrefs=True)
        self.max_token_size = max_token_size
        self._ready: List[Token] = []
        self._pending_text: List[str] = []
        self._pending_len = 0

    def _check_size(self, size: int, what: str) -> None:
        if self.max_token_size and size > self.max_token_size:
            raise TokenizerError(
                f"max token size exceeded: {what} of {size} chars (limit {self.max_token_size})"
            )

    def _flush_text(self) -> None:
        if self._pending_text:
            self._ready.append(Token(TokenType.TEXT, "".join(self._pending_text)))
            self._pending_text = []
            self._pending_len = 0

    def _emit(self, token: Token, raw_size: int) -> None:
        self._check_size(raw_size, token.type.value)
        self._flush_text()
        self._ready.append(token)

    @staticmethod
    def _attrs(attrs) -> Tuple[Tuple[str, str], ...]:
        return tuple((k.lower(), v if v is not None else "") for k, v in attrs)

    def handle_starttag(self, tag, attrs):
        raw = self.get_starttag_text() or ""
        self._emit(Token(TokenType.START_TAG, tag.lower(), self._attrs(attrs)), len(raw))

    def handle_startendtag(self, tag, attrs):
        raw = self.get_starttag_text() or ""
        self._emit(Token(TokenType.SELF_CLOSING_TAG, tag.lower(), self._attrs(attrs)), len(raw))

    def handle_endtag(self, tag):
        self._emit(Token(TokenType.END_TAG, tag.lower()), len(tag))

    def handle_data(self, data):
        self._pending_len += len(data)
        self._check_size(self._pending_len, "text")
        self._pending_text.append(data)

    def handle_comment(self, data):
        self._emit(Token(TokenType.COMMENT, data), len(data))

    def handle_decl(self, decl):
        parts = decl.split(None, 1)
        if parts and parts[0].lower() == "doctype":
            payload = parts[1].strip() if len(parts) > 1 else ""
            self._emit(Token(TokenType.DOCTYPE, payload), len(decl))
        else:
            self._emit(Token(TokenType.COMMENT, decl), len(decl))

    def handle_pi(self, data):
        self._emit(Token(TokenType.COMMENT, data), len(data))

    def unknown_decl(self, data):
        self._emit(Token(TokenType.COMMENT, data), len(data))

    def drain(self) -> List[Token]:
        ready, self._ready = self._ready, []
        return ready

    def finish(self) -> List[Token]:
        self.close()
        self._flush_text()
        return self.drain()


class TokenStream:
    """
    A single forward pass over a document.
    Iterating yields every token followed by exactly one terminal token (EOF or ERROR).
    """

    def __init__(self, text: str, max_token_size: int = 0, chunk_size: int = 8192):
        self._tokens = self._generate(text, max_token_size, chunk_size)
        self._terminal: Optional[Token] = None

    @staticmethod
    def _generate(text: str, max_token_size: int, chunk_size: int) -> Iterator[Token]:
        if not isinstance(text, str):
            yield Token(TokenType.ERROR, error=TokenizerError(
                f"document must be str, got {type(text).__name__}"))
            return

        collector = _TokenCollector(max_token_size=max_token_size)
        try:
            for start in range(0, len(text), chunk_size):
                collector.feed(text[start:start + chunk_size])
                yield from collector.drain()
            tail = collector.finish()
        except TokenizerError as e:
            yield from collector.drain()
            yield Token(TokenType.ERROR, error=e)
            return
        except Exception as e:
            yield from collector.drain()
            err = TokenizerError(f"{type(e).__name__}: {e}")
            err.__cause__ = e
            yield Token(TokenType.ERROR, error=err)
            return

        yield from tail
        yield Token(TokenType.EOF)

    def __iter__(self) -> "TokenStream":
        return self

    def __next__(self) -> Token:
        if self._terminal is not None:
            raise StopIteration
        token = next(self._tokens)
        if token.is_terminal:
            self._terminal = token
        return token


class HTMLTokenizer:
    """Creates independent token streams over the same document text."""

    def __init__(self, max_token_size: int = 0, chunk_size: int = 8192):
        self.max_token_size = max_token_size
        self.chunk_size = chunk_size

    def new_stream(self, text: str) -> TokenStream:
        return TokenStream(text, max_token_size=self.max_token_size, chunk_size=self.chunk_size)


def validate_document(tokenizer: Tokenizer, text: str, log: Optional[logging.Logger] = None) -> None:
    """
    Runs one full pass over the document.
    Raises ParseFailure if the stream ends with an ERROR token.
    """
    log = log or logger
    log.debug("Running test pass on html document")
    for token in tokenizer.new_stream(text):
        if token.type is TokenType.ERROR:
            log.warning("Test pass on html document FAILED: %s", token.error)
            raise ParseFailure(token.error) from token.error
        if token.type is TokenType.EOF:
            break
    log.debug("Test pass on html document SUCCEEDED")
