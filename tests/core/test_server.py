# tests/core/test_server.py
import pytest

from url_analyser.errors import PageFetchFailure, ParseFailure
from url_analyser.model import AnalysisReport, HeadingsCount, LinksCount, ServerSettings
from url_analyser.server.app import create_app

REPORT = AnalysisReport(
    html_version="HTML 5.0",
    page_title="Example",
    headings=HeadingsCount(h1=1),
    links_by_type=LinksCount(internal=2, external=1),
    inaccessible_links=1,
    login_form=False,
)


class FakeController:
    def __init__(self, outcome=REPORT):
        self.outcome = outcome
        self.urls = []

    def analyse_url(self, url):
        self.urls.append(url)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def make_client():
    def _make(outcome=REPORT):
        controller = FakeController(outcome)
        app = create_app(ServerSettings(env="test", app="UrlAnalyserTest"), controller=controller)
        app.config['TESTING'] = True
        return app.test_client(), controller
    return _make


def test_index_renders_form(make_client):
    client, _ = make_client()
    response = client.get('/')
    assert response.status_code == 200
    assert b"UrlAnalyserTest" in response.data
    assert b"/analyseUrl" in response.data


def test_analyse_url_returns_report(make_client):
    client, controller = make_client()
    response = client.post('/analyseUrl', json={"URL": "  https://example.com/  "})

    assert response.status_code == 200
    assert response.get_json() == {
        "htmlVersion": "HTML 5.0",
        "pageTitle": "Example",
        "headings": {"h1": 1, "h2": 0, "h3": 0, "h4": 0, "h5": 0, "h6": 0},
        "linksByType": {"internal": 2, "external": 1},
        "inaccessibleLinks": 1,
        "loginForm": False,
    }
    assert controller.urls == ["https://example.com/"]


def test_malformed_json_is_rejected(make_client):
    client, controller = make_client()
    response = client.post('/analyseUrl', data="{not json", content_type="application/json")
    assert response.status_code == 400
    assert controller.urls == []


def test_missing_url_field_is_rejected(make_client):
    client, _ = make_client()
    response = client.post('/analyseUrl', json={"url_typo": "https://example.com/"})
    assert response.status_code == 400


@pytest.mark.parametrize("url", ["", "example.com", "ftp://example.com/", "http://[::1"])
def test_unparseable_url_is_rejected(make_client, url):
    client, controller = make_client()
    response = client.post('/analyseUrl', json={"URL": url})
    assert response.status_code == 400
    assert controller.urls == []


def test_fetch_failure_maps_to_bad_gateway(make_client):
    client, _ = make_client(PageFetchFailure("https://example.com/", status_code=503))
    response = client.post('/analyseUrl', json={"URL": "https://example.com/"})
    assert response.status_code == 502
    assert "Failed to retrieve data" in response.get_json()["error"]


def test_parse_failure_maps_to_server_error(make_client):
    client, _ = make_client(ParseFailure(RuntimeError("bad token")))
    response = client.post('/analyseUrl', json={"URL": "https://example.com/"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "Received unparseable HTML from URL: https://example.com/"}


def test_empty_page_gives_empty_response(make_client):
    client, _ = make_client(None)
    response = client.post('/analyseUrl', json={"URL": "https://example.com/"})
    assert response.status_code == 200
    assert response.data == b""


def test_app_exposes_environment(make_client):
    client, _ = make_client()
    assert client.application.config['ENV_NAME'] == "test"
