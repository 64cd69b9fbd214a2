"""Structured per-signal breakdowns shown next to the findings.

Each builder reads one parsed signal and returns a typed record, or ``None``
when the value can't be described. Builders never affect the score.
"""
from __future__ import annotations

import math
from typing import Callable

from pydantic import BaseModel

from .models import (
    CompanyVerification,
    ContentAnalysis,
    EmailAnalysis,
    PlatformAnalysis,
    PonziCalculation,
    SalaryAnalysis,
    SentimentBreakdown,
    SignalValue,
)

HIGH_YIELD_DAILY_PCT = 1.0


def yearly_equivalent_pct(daily_pct: float) -> float:
    """Compound a daily return over 365 days; returns a percentage."""
    try:
        return ((1 + daily_pct / 100) ** 365 - 1) * 100
    except OverflowError:
        return math.inf


def format_pct(pct: float) -> str:
    if pct >= 1_000_000:
        return "over 1,000,000%"
    return f"{pct:,.0f}%"


def doubling_days(daily_pct: float) -> float:
    """Days until compounded payouts equal the money paid in."""
    growth = math.log1p(daily_pct / 100)
    if growth <= 0:
        return math.inf
    return math.log(2) / growth


def ponzi_calculation(value: SignalValue) -> PonziCalculation | None:
    daily = value.numeric_value
    if daily is None or daily <= 0:
        return None

    if daily >= HIGH_YIELD_DAILY_PCT:
        sustainability = "Impossible to sustain; payouts can only come from new deposits"
    elif daily >= 0.1:
        sustainability = "Highly unlikely to be sustainable"
    else:
        sustainability = "Plausible for a legitimate investment"

    days = doubling_days(daily)
    collapse = "more than 10 years" if days > 3650 else f"about {math.ceil(days)} days"
    return PonziCalculation(
        promised_return=f"{daily:g}% daily",
        yearly_equivalent=format_pct(yearly_equivalent_pct(daily)),
        sustainability=sustainability,
        collapse_days=collapse,
    )


_POSITIVE_CONTENT = {
    "about-us": "about_us_found",
    "terms-of-service": "terms_of_service_found",
    "contact-info": "contact_info_found",
    "physical-address": "physical_address_found",
}


def content_analysis(value: SignalValue) -> ContentAnalysis | None:
    flags = tuple(dict.fromkeys(value.flags or ()))
    if not flags:
        return None
    found = {field: flag in flags for flag, field in _POSITIVE_CONTENT.items()}
    return ContentAnalysis(
        **found,
        stock_images_detected="stock-images" in flags,
        suspicious_patterns=tuple(f for f in flags if f not in _POSITIVE_CONTENT),
    )


def sentiment_breakdown(value: SignalValue) -> SentimentBreakdown | None:
    polarity = value.numeric_value
    if polarity is None or not -1.0 <= polarity <= 1.0:
        return None
    positive = round(max(polarity, 0.0) * 100)
    negative = round(max(-polarity, 0.0) * 100)
    return SentimentBreakdown(positive=positive, neutral=100 - positive - negative, negative=negative)


def email_analysis(value: SignalValue) -> EmailAnalysis | None:
    flags = set(value.flags or ())
    matches = "domain-mismatch" not in flags
    if "disposable" in flags:
        return EmailAnalysis(is_corporate=False, provider="Disposable address", domain_matches_company=matches, risk="High")
    if "invalid" in flags:
        return EmailAnalysis(is_corporate=False, provider="Invalid address", domain_matches_company=matches, risk="High")
    if "free-provider" in flags:
        return EmailAnalysis(is_corporate=False, provider="Free email provider", domain_matches_company=matches, risk="High")
    if "corporate" in flags:
        return EmailAnalysis(
            is_corporate=True,
            provider="Corporate domain",
            domain_matches_company=matches,
            risk="Low" if matches else "Medium",
        )
    return None


def salary_analysis(value: SignalValue) -> SalaryAnalysis | None:
    yearly = value.numeric_value
    if yearly is None or yearly <= 0:
        return None
    shown = f"${yearly:,.0f}"
    if yearly >= 250_000:
        return SalaryAnalysis(yearly_equivalent=shown, is_reasonable=False, assessment="Unrealistically high", risk="High")
    if yearly >= 150_000:
        return SalaryAnalysis(yearly_equivalent=shown, is_reasonable=False, assessment="Unusually high", risk="Medium")
    if yearly < 15_000:
        return SalaryAnalysis(yearly_equivalent=shown, is_reasonable=False, assessment="Unusually low", risk="Medium")
    return SalaryAnalysis(yearly_equivalent=shown, is_reasonable=True, assessment="Within a normal range", risk="Low")


_DOWNGRADE = {"High": "Medium", "Medium": "Low", "Low": "Low"}


def platform_analysis(value: SignalValue) -> PlatformAnalysis | None:
    flags = set(value.flags or ())
    if "url-shortener" in flags:
        platform, legit, trust = "URL shortener", False, "Low"
    elif "known-board" in flags:
        platform, legit, trust = "Known job board", True, "High"
    elif "company-careers" in flags:
        platform, legit, trust = "Company careers site", True, "High"
    elif "unknown-host" in flags:
        platform, legit, trust = "Unrecognised site", False, "Medium"
    else:
        return None
    if "insecure" in flags:
        trust = _DOWNGRADE[trust]
    return PlatformAnalysis(platform=platform, is_legitimate=legit, trust_level=trust)


def company_verification(value: SignalValue) -> CompanyVerification | None:
    flags = set(value.flags or ())
    if "has-website" in flags:
        return CompanyVerification(name_provided=True, has_website=True, legitimacy_score=80)
    if "no-website" in flags:
        return CompanyVerification(name_provided=True, has_website=False, legitimacy_score=40)
    if "name-missing" in flags:
        return CompanyVerification(name_provided=False, has_website=False, legitimacy_score=10)
    return None


# signal kind -> (AnalysisResult field, builder)
BREAKDOWNS: dict[str, tuple[str, Callable[[SignalValue], BaseModel | None]]] = {
    "yield-promise": ("ponzi_calculation", ponzi_calculation),
    "content-flags": ("content_analysis", content_analysis),
    "sentiment": ("sentiment", sentiment_breakdown),
    "email-provenance": ("email_analysis", email_analysis),
    "salary-reasonableness": ("salary_analysis", salary_analysis),
    "job-platform": ("platform_analysis", platform_analysis),
    "company-presence": ("company_verification", company_verification),
}
