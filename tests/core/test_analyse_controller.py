# tests/core/test_analyse_controller.py
import logging

import pytest

from url_analyser.controllers.analyse_controller import AnalyserState, HTMLPageAnalyser
from url_analyser.errors import AnalyserStateError, ParseFailure
from url_analyser.model import AnalyserSettings, HeadingsCount, LinksCount, ProbeResult
from url_analyser.services.token_stream_service import Token, TokenType

SOURCE_URL = "https://example.com/login"

LOGIN_PAGE = """<!DOCTYPE html>
<html>
<head><title>Sign in</title></head>
<body>
  <h1>Welcome</h1>
  <h2>Members</h2><h2>Guests</h2>
  <a href="/home">Home</a>
  <a href="https://external.org/page">Elsewhere</a>
  <a href="/broken">Broken</a>
  <a href="#main">Skip to content</a>
  <form action="/session" method="post">
    <input type="text" name="user">
    <input type="password" name="pw">
    <input type="submit" value="Log in">
  </form>
</body>
</html>
"""

quiet_logger = logging.getLogger("tests.analyser")
quiet_logger.addHandler(logging.NullHandler())


@pytest.fixture
def probe_calls():
    return []


@pytest.fixture
def fake_fetch(probe_calls):
    async def fetch(url):
        probe_calls.append(url)
        status = 404 if url.endswith("/broken") else 200
        return ProbeResult(url=url, status_code=status)
    return fetch


class AlwaysFailingTokenizer:
    def __init__(self):
        self.streams = 0

    def new_stream(self, text):
        self.streams += 1
        return iter([Token(TokenType.ERROR, error=RuntimeError("broken markup"))])


def test_analyse_builds_full_report(fake_fetch, probe_calls):
    analyser = HTMLPageAnalyser(LOGIN_PAGE, SOURCE_URL, fetch=fake_fetch, log=quiet_logger)
    assert analyser.state is AnalyserState.CREATED

    report = analyser.analyse()

    assert report.html_version == "HTML 5.0"
    assert report.page_title == "Sign in"
    assert report.headings == HeadingsCount(h1=1, h2=2)
    assert report.links_by_type == LinksCount(internal=3, external=1)
    assert report.inaccessible_links == 1
    assert report.login_form is True
    assert analyser.state is AnalyserState.DONE
    assert analyser.report is report
    assert sorted(probe_calls) == [
        "https://example.com/broken",
        "https://example.com/home",
        "https://external.org/page",
    ]


def test_report_serialises_with_client_field_names(fake_fetch):
    report = HTMLPageAnalyser(LOGIN_PAGE, SOURCE_URL, fetch=fake_fetch, log=quiet_logger).analyse()
    data = report.to_json_dict()
    assert set(data) == {"htmlVersion", "pageTitle", "headings", "linksByType", "inaccessibleLinks", "loginForm"}
    assert data["headings"] == {"h1": 1, "h2": 2, "h3": 0, "h4": 0, "h5": 0, "h6": 0}
    assert data["linksByType"] == {"internal": 3, "external": 1}


def test_report_is_immutable(fake_fetch):
    report = HTMLPageAnalyser(LOGIN_PAGE, SOURCE_URL, fetch=fake_fetch, log=quiet_logger).analyse()
    with pytest.raises(Exception):
        report.page_title = "changed"


def test_parse_failure_runs_no_extractor(fake_fetch, probe_calls):
    tokenizer = AlwaysFailingTokenizer()
    analyser = HTMLPageAnalyser(LOGIN_PAGE, SOURCE_URL, tokenizer=tokenizer, fetch=fake_fetch, log=quiet_logger)

    with pytest.raises(ParseFailure) as exc_info:
        analyser.analyse()

    assert str(exc_info.value.cause) == "broken markup"
    assert analyser.state is AnalyserState.FAILED
    assert analyser.report is None
    assert tokenizer.streams == 1
    assert probe_calls == []


def test_oversized_token_fails_prepass(fake_fetch):
    settings = AnalyserSettings(max_token_size=16)
    analyser = HTMLPageAnalyser("<p>" + "z" * 64 + "</p>", SOURCE_URL, fetch=fake_fetch, settings=settings)
    with pytest.raises(ParseFailure):
        analyser.analyse()
    assert analyser.state is AnalyserState.FAILED


def test_large_inline_script_is_analysed_with_default_settings(fake_fetch):
    html = "<!DOCTYPE html><title>Big</title><script>" + "x" * (5 * 1024 * 1024) + "</script><h1>end</h1>"
    report = HTMLPageAnalyser(html, SOURCE_URL, fetch=fake_fetch, log=quiet_logger).analyse()
    assert report.page_title == "Big"
    assert report.headings == HeadingsCount(h1=1)


def test_second_analyse_call_is_rejected(fake_fetch):
    analyser = HTMLPageAnalyser(LOGIN_PAGE, SOURCE_URL, fetch=fake_fetch, log=quiet_logger)
    analyser.analyse()
    with pytest.raises(AnalyserStateError):
        analyser.analyse()


def test_structure_is_identical_across_runs(fake_fetch):
    first = HTMLPageAnalyser(LOGIN_PAGE, SOURCE_URL, fetch=fake_fetch, log=quiet_logger).analyse()
    second = HTMLPageAnalyser(LOGIN_PAGE, SOURCE_URL, fetch=fake_fetch, log=quiet_logger).analyse()
    exclude = {"inaccessible_links"}
    assert first.model_dump(exclude=exclude) == second.model_dump(exclude=exclude)


def test_unparseable_only_link(fake_fetch, probe_calls):
    report = HTMLPageAnalyser(
        '<a href="http://[::1">x</a>', SOURCE_URL, fetch=fake_fetch, log=quiet_logger
    ).analyse()
    assert report.links_by_type == LinksCount(internal=0, external=0)
    assert report.inaccessible_links == 1
    assert probe_calls == []


def test_empty_document_gives_sentinels(fake_fetch):
    report = HTMLPageAnalyser("", SOURCE_URL, fetch=fake_fetch, log=quiet_logger).analyse()
    assert report.html_version == "Document contains no doctype element"
    assert report.page_title == "Document contains no title element"
    assert report.headings.total() == 0
    assert report.links_by_type.total() == 0
    assert report.inaccessible_links == 0
    assert report.login_form is False


@pytest.mark.parametrize("url", ["", "example.com/page", "/relative", "ftp://example.com/"])
def test_source_url_must_be_absolute_web_url(url):
    with pytest.raises(ValueError):
        HTMLPageAnalyser("<p>x</p>", url)
