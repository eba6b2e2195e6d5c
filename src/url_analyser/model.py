# src/url_analyser/model.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class HeadingsCount(BaseModel):
    """Frequency of each heading level found in a document."""
    model_config = ConfigDict(frozen=True)

    h1: int = Field(default=0, ge=0)
    h2: int = Field(default=0, ge=0)
    h3: int = Field(default=0, ge=0)
    h4: int = Field(default=0, ge=0)
    h5: int = Field(default=0, ge=0)
    h6: int = Field(default=0, ge=0)

    @classmethod
    def from_counts(cls, counts: Mapping[str, int]) -> "HeadingsCount":
        return cls(**{level: counts.get(level, 0) for level in cls.model_fields})

    def total(self) -> int:
        return sum(self.model_dump().values())


class LinksCount(BaseModel):
    """Frequency of internal and external hyperlinks found in a document."""
    model_config = ConfigDict(frozen=True)

    internal: int = Field(default=0, ge=0)
    external: int = Field(default=0, ge=0)

    def total(self) -> int:
        return self.internal + self.external


class AnalysisReport(BaseModel):
    """
    The structural analysis of a single HTML page.
    Serialises to the JSON shape consumed by the web client.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    html_version: str = Field(alias="htmlVersion")
    page_title: str = Field(alias="pageTitle")
    headings: HeadingsCount = Field(default_factory=HeadingsCount)
    links_by_type: LinksCount = Field(default_factory=LinksCount, alias="linksByType")
    inaccessible_links: int = Field(default=0, ge=0, alias="inaccessibleLinks")
    login_form: bool = Field(default=False, alias="loginForm")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ProbeResult(BaseModel):
    url: str
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_accessible(self) -> bool:
        if self.error is not None or self.status_code is None:
            return False
        return 200 <= self.status_code < 300


class AnalyserSettings(BaseModel):
    concurrency: int = Field(default=20, ge=1)
    probe_timeout: float = Field(default=10.0, gt=0)
    overall_timeout: Optional[float] = Field(default=None, description="Deadline for all probes together.")
    page_timeout: float = Field(default=30.0, gt=0)
    max_redirects: int = Field(default=5, ge=0)
    max_token_size: int = Field(default=0, ge=0, description="Largest single token in characters; 0 disables the limit.")
    chunk_size: int = Field(default=8192, ge=1)
    user_agent: Optional[str] = None
    show_progress: bool = False


class ServerSettings(BaseModel):
    env: str = "dev"
    ip: str = "0.0.0.0"
    port: int = 8080
    app: str = "UrlAnalyser"


class AnalyseURLRequest(BaseModel):
    """Body of a POST to /analyseUrl."""
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(alias="URL", min_length=1)
