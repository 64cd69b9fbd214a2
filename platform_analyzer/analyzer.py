from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable
from urllib.parse import urlparse, urlunparse

from . import signals as extract
from .ai_judge import explain_result
from .collector import Collector, collect_signals
from .errors import InvalidInput
from .models import AnalysisResult, AnalyzeRequest, JobAnalyzeRequest, SignalValue, TargetType
from .scoring import EXPECTED_KINDS, ScoreAggregator
from .settings import Settings

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+.-]*://")


@dataclass
class Analysis:
    result: AnalysisResult
    analyzed_at: str
    timings_ms: dict[str, int] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def _normalize_url(raw: str, field_name: str = "url") -> str:
    value = raw.strip()
    if not value:
        raise InvalidInput(field_name, "please provide a URL")

    if not _SCHEME_RE.match(value):
        value = "https://" + value

    try:
        parsed = urlparse(value)
        hostname = parsed.hostname
    except ValueError:
        # urlparse rejects things like an unclosed "[" IPv6 literal
        raise InvalidInput(field_name, "please enter a valid website URL") from None
    if parsed.scheme not in ("http", "https"):
        raise InvalidInput(field_name, "please use an http(s) website URL")
    if not hostname or "." not in hostname:
        raise InvalidInput(field_name, "please enter a valid website domain")

    return urlunparse(parsed._replace(fragment=""))


def _display_host(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def _ssl_from_scheme(raw_url: str) -> SignalValue | None:
    # Only an explicit scheme says anything; bare domains default to https.
    value = raw_url.strip().lower()
    if value.startswith("http://"):
        return SignalValue(kind="ssl-status", flags=("absent",))
    if value.startswith("https://"):
        return SignalValue(kind="ssl-status", flags=("present",))
    return None


def website_collectors(req: AnalyzeRequest, timeout_s: float) -> list[Collector]:
    text = req.content

    def on_text(fn: Callable[[str | None], SignalValue | None]) -> Callable[[], SignalValue | None]:
        return lambda: fn(text)

    return [
        Collector("ssl-status", lambda: _ssl_from_scheme(req.url), timeout_s),
        Collector("content-flags", on_text(extract.content_flags), timeout_s),
        Collector("sentiment", on_text(extract.sentiment), timeout_s),
        Collector("yield-promise", on_text(extract.yield_promise), timeout_s),
    ]


def job_collectors(req: JobAnalyzeRequest, timeout_s: float) -> list[Collector]:
    return [
        Collector("email-provenance", lambda: extract.email_provenance(req.recruiter_email, req.company_name), timeout_s),
        Collector("salary-reasonableness", lambda: extract.salary_reasonableness(req.salary), timeout_s),
        Collector("job-platform", lambda: extract.job_platform(req.job_url, req.company_name), timeout_s),
        Collector("content-flags", lambda: extract.content_flags(req.job_description), timeout_s),
        Collector("company-presence", lambda: extract.company_presence(req.company_name, req.recruiter_email, req.job_url), timeout_s),
        Collector("sentiment", lambda: extract.sentiment(req.job_description), timeout_s),
        Collector("yield-promise", lambda: extract.yield_promise(req.job_description), timeout_s),
    ]


def _run(
    target: str,
    target_type: TargetType,
    supplied: dict[str, SignalValue],
    collectors: Iterable[Collector],
    settings: Settings,
    aggregator: ScoreAggregator,
    include_ai: bool,
    ai_context: dict[str, object],
) -> Analysis:
    t0 = time.perf_counter()

    # Caller-supplied signals win; don't spend time collecting what we already have.
    # Built-in collectors are named after the signal kind they produce.
    covered = set(supplied) | {v.kind for v in supplied.values()}
    pending = [c for c in collectors if c.name not in covered]
    collection = collect_signals(pending, overall_timeout_s=settings.collect_timeout_s)
    merged = {**collection.signals, **supplied}
    # An expected signal that couldn't be collected is scored as neutral, so a
    # request where every collector came back empty still gets a baseline result.
    expected = EXPECTED_KINDS.get(target_type, ())
    for name in collection.missing:
        if name in expected:
            merged.setdefault(name, SignalValue(kind=name))

    timings = {f"collect.{k}": v for k, v in collection.timings_ms.items()}
    warnings = list(collection.warnings)

    t_agg = time.perf_counter()
    result = aggregator.aggregate(target, merged, target_type=target_type)
    timings["aggregate"] = int((time.perf_counter() - t_agg) * 1000)

    if include_ai and settings.gemini_api_key:
        t_ai = time.perf_counter()
        commentary = explain_result(
            result,
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            context=ai_context,
        )
        timings["ai"] = int((time.perf_counter() - t_ai) * 1000)
        if commentary:
            result = result.model_copy(update={"ai_analysis": commentary})
        else:
            warnings.append("AI analysis: unavailable")

    timings["total"] = int((time.perf_counter() - t0) * 1000)
    logger.info(
        "analyzed %s %s: score=%d verdict=%s signals=%d missing=%d",
        target_type, target, result.score, result.verdict, len(merged), len(collection.missing),
    )
    return Analysis(
        result=result,
        analyzed_at=datetime.now(timezone.utc).isoformat(),
        timings_ms=timings,
        warnings=warnings,
    )


def analyze_website(
    req: AnalyzeRequest,
    settings: Settings,
    aggregator: ScoreAggregator,
    extra_collectors: Iterable[Collector] = (),
) -> Analysis:
    normalized_url = _normalize_url(req.url)
    target = _display_host(normalized_url)
    collectors = website_collectors(req, settings.collector_timeout_s) + list(extra_collectors)
    return _run(
        target,
        "website",
        dict(req.signals),
        collectors,
        settings,
        aggregator,
        req.include_ai_analysis,
        {"url": normalized_url, "content excerpt": (req.content or "")[:4000]},
    )


def analyze_job(
    req: JobAnalyzeRequest,
    settings: Settings,
    aggregator: ScoreAggregator,
    extra_collectors: Iterable[Collector] = (),
) -> Analysis:
    if not req.job_url.strip() and not req.job_description.strip():
        raise InvalidInput("job_url", "please provide either a job URL or a job description")

    if req.job_url.strip():
        target = _normalize_url(req.job_url, "job_url")
    else:
        target = req.company_name.strip() or "job posting"

    collectors = job_collectors(req, settings.collector_timeout_s) + list(extra_collectors)
    return _run(
        target,
        "job",
        dict(req.signals),
        collectors,
        settings,
        aggregator,
        req.include_ai_analysis,
        {
            "company": req.company_name,
            "salary": req.salary,
            "recruiter email": req.recruiter_email,
            "description excerpt": req.job_description[:4000],
        },
    )
