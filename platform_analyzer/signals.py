"""Text-only signal extractors.

Each extractor looks at text the caller already has (page content, a job
description, a salary line, a recruiter email) and returns a ``SignalValue``,
or ``None`` when there is nothing to judge. None of them touch the network.
"""
from __future__ import annotations

import re
from urllib.parse import urlparse

from .models import SignalValue

# --- content flags ---

_CONTENT_PATTERNS: dict[str, re.Pattern[str]] = {
    "guaranteed-returns": re.compile(
        r"guaranteed\s+(?:returns?|profits?|income|roi)|risk[\s-]?free\s+(?:investment|returns?|profits?)|"
        r"no\s+risk\s+of\s+loss|double\s+your\s+(?:money|investment|bitcoin)",
        re.IGNORECASE,
    ),
    "high-yield": re.compile(
        r"\b\d{1,3}(?:\.\d+)?\s*%\s*(?:daily|per\s+day|a\s+day|every\s+day|weekly|per\s+week)\b|"
        r"passive\s+income\s+of\s+\$?\d",
        re.IGNORECASE,
    ),
    "referral-pyramid": re.compile(
        r"referral\s+(?:bonus|commission|levels?)|recruit\s+(?:new\s+)?members|downline|multi[\s-]?level",
        re.IGNORECASE,
    ),
    "crypto-payment-only": re.compile(
        r"(?:pay|payment|deposit)s?\s+(?:only\s+)?(?:in|with|via)\s+(?:bitcoin|btc|usdt|crypto(?:currency)?|gift\s*cards?)",
        re.IGNORECASE,
    ),
    "upfront-fee": re.compile(
        r"(?:registration|training|processing|application|starter\s+kit|equipment)\s+fee|"
        r"pay\s+(?:for|a)\s+(?:your\s+)?(?:training|equipment|kit)|refundable\s+deposit",
        re.IGNORECASE,
    ),
    "check-cashing": re.compile(
        r"(?:deposit|cash)\s+(?:the\s+|a\s+)?(?:check|cheque)|forward\s+(?:the\s+)?(?:funds|money|payment)|"
        r"money\s+transfer\s+agent|wire\s+the\s+(?:remaining|difference)",
        re.IGNORECASE,
    ),
    "urgency": re.compile(
        r"act\s+now|limited\s+time\s+only|only\s+\d+\s+(?:spots?|left|slots?)|offer\s+ends\s+(?:today|tonight|soon)|"
        r"hurry|urgent(?:ly)?\s+hiring|immediate\s+start",
        re.IGNORECASE,
    ),
    "off-platform-interview": re.compile(
        r"(?:interview|contact|message|reach)\s+(?:us\s+|me\s+)?(?:on|via|through|over)\s+(?:telegram|whatsapp|signal|wechat|google\s+hangouts)",
        re.IGNORECASE,
    ),
    "no-experience-high-pay": re.compile(
        r"no\s+experience\s+(?:needed|required|necessary).{0,120}\$\s?\d{3,}|"
        r"earn\s+\$\s?\d[\d,]{2,}\s+(?:a|per)\s+(?:day|week)\s+from\s+home",
        re.IGNORECASE | re.DOTALL,
    ),
    "personal-info-request": re.compile(
        r"social\s+security\s+number|\bssn\b|bank\s+account\s+(?:number|details)|routing\s+number|"
        r"(?:copy|photo)\s+of\s+(?:your\s+)?(?:id|passport|driver'?s\s+licen[cs]e)",
        re.IGNORECASE,
    ),
    "stock-images": re.compile(r"shutterstock|gettyimages|istockphoto|depositphotos|dreamstime", re.IGNORECASE),
    "malware": re.compile(
        r"eval\(\s*atob\(|document\.write\(\s*unescape\(|coinhive|cryptonight|\.exe[\"']\s*download",
        re.IGNORECASE,
    ),
    "phishing": re.compile(
        r"verify\s+your\s+(?:account|identity)\s+(?:immediately|now|within)|your\s+account\s+(?:has\s+been|will\s+be)\s+(?:suspended|locked)|"
        r"confirm\s+your\s+(?:password|card\s+details)",
        re.IGNORECASE,
    ),
    "about-us": re.compile(r"about\s+us|our\s+story|who\s+we\s+are", re.IGNORECASE),
    "terms-of-service": re.compile(r"terms\s+(?:of\s+(?:service|use)|and\s+conditions)", re.IGNORECASE),
    "contact-info": re.compile(
        r"contact\s+us|\+?\d{1,3}[\s.-]?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}|[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}",
        re.IGNORECASE,
    ),
    "physical-address": re.compile(
        r"\b\d{1,5}\s+\w+(?:\s+\w+)?\s+(?:street|st\.|road|rd\.|avenue|ave\.?|boulevard|blvd|suite|lane|drive)\b",
        re.IGNORECASE,
    ),
}


def content_flags(text: str | None) -> SignalValue | None:
    if not text or not text.strip():
        return None
    flags = tuple(name for name, pattern in _CONTENT_PATTERNS.items() if pattern.search(text))
    if "contact-info" not in flags:
        flags = flags + ("no-contact-info",)
    return SignalValue(kind="content-flags", flags=flags)


# --- sentiment ---

_POSITIVE_WORDS = frozenset({
    "trusted", "reliable", "legit", "legitimate", "great", "excellent", "recommend", "recommended",
    "helpful", "fast", "professional", "secure", "satisfied", "happy", "honest", "quality", "love",
    "smooth", "responsive", "transparent", "good", "refund", "received",
})

_NEGATIVE_WORDS = frozenset({
    "scam", "scammed", "fraud", "fraudulent", "fake", "stolen", "steal", "lost", "never",
    "unable", "blocked", "ponzi", "pyramid", "warning", "avoid", "terrible", "worst", "rip",
    "ripoff", "cheated", "lie", "lies", "liar", "complaint", "complaints", "suspicious", "bad",
})

_WORD_RE = re.compile(r"[a-z']+")


def sentiment(text: str | None) -> SignalValue | None:
    """Lexicon polarity in [-1, 1]; ``None`` when no opinion words are present."""
    if not text:
        return None
    words = _WORD_RE.findall(text.lower())
    pos = sum(1 for w in words if w in _POSITIVE_WORDS)
    neg = sum(1 for w in words if w in _NEGATIVE_WORDS)
    if pos + neg == 0:
        return None
    return SignalValue(kind="sentiment", numeric_value=round((pos - neg) / (pos + neg), 3))


# --- promised returns ---

_YIELD_RE = re.compile(
    r"(\d{1,4}(?:\.\d+)?)\s*%\s*(?:(?:return|profit|roi|interest|yield)s?\s+)?"
    r"(?:(daily|per\s+day|a\s+day|every\s+day)|(weekly|per\s+week|a\s+week)|(monthly|per\s+month|a\s+month))",
    re.IGNORECASE,
)


def _to_daily(pct: float, days: int) -> float:
    return ((1 + pct / 100) ** (1 / days) - 1) * 100


def yield_promise(text: str | None) -> SignalValue | None:
    """Highest promised return found in the text, converted to a daily rate."""
    if not text:
        return None
    best: float | None = None
    for m in _YIELD_RE.finditer(text):
        pct = float(m.group(1))
        if m.group(2):
            daily = pct
        elif m.group(3):
            daily = _to_daily(pct, 7)
        else:
            daily = _to_daily(pct, 30)
        if best is None or daily > best:
            best = daily
    if best is None:
        return None
    return SignalValue(kind="yield-promise", numeric_value=round(best, 4))


# --- salary ---

_SALARY_RE = re.compile(
    r"\$?\s*(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)\s*(k)?\s*"
    r"(?:(?:/|per|an?|each)\s*(hour|hr|day|week|wk|month|mo|year|yr|annum))?",
    re.IGNORECASE,
)

_PERIOD_MULTIPLIER = {
    "hour": 2080, "hr": 2080,
    "day": 260,
    "week": 52, "wk": 52,
    "month": 12, "mo": 12,
    "year": 1, "yr": 1, "annum": 1,
}


def parse_yearly_salary(text: str | None) -> float | None:
    """Best-effort yearly equivalent of a salary line such as ``$45/hour`` or ``80k``."""
    if not text:
        return None
    m = _SALARY_RE.search(text)
    if not m:
        return None
    amount = float(m.group(1).replace(",", ""))
    if m.group(2):
        amount *= 1000
    period = (m.group(3) or "").lower()
    if period:
        return amount * _PERIOD_MULTIPLIER[period]
    # Without a period, small amounts are read as hourly pay.
    if amount < 200:
        return amount * 2080
    return amount


def salary_reasonableness(text: str | None) -> SignalValue | None:
    yearly = parse_yearly_salary(text)
    if yearly is None or yearly <= 0:
        return None
    return SignalValue(kind="salary-reasonableness", numeric_value=round(yearly, 2))


# --- recruiter email ---

FREE_EMAIL_PROVIDERS = frozenset({
    "gmail.com", "googlemail.com", "yahoo.com", "ymail.com", "hotmail.com", "outlook.com", "live.com",
    "msn.com", "aol.com", "icloud.com", "me.com", "mail.com", "gmx.com", "gmx.net", "proton.me",
    "protonmail.com", "yandex.com", "yandex.ru", "zoho.com",
})

DISPOSABLE_EMAIL_PROVIDERS = frozenset({
    "mailinator.com", "guerrillamail.com", "10minutemail.com", "tempmail.com", "temp-mail.org",
    "yopmail.com", "trashmail.com", "sharklasers.com", "getnada.com", "dispostable.com",
})

_EMAIL_RE = re.compile(r"^[A-Z0-9._%+-]+@([A-Z0-9.-]+\.[A-Z]{2,})$", re.IGNORECASE)


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def registrable_domain_guess(hostname: str) -> str:
    parts = [p for p in hostname.lower().split(".") if p]
    if len(parts) <= 2:
        return ".".join(parts)
    return ".".join(parts[-2:])


def email_provenance(email: str | None, company_name: str | None = None) -> SignalValue | None:
    value = (email or "").strip()
    if not value:
        return None
    m = _EMAIL_RE.match(value)
    if not m:
        return SignalValue(kind="email-provenance", flags=("invalid",))
    domain = m.group(1).lower()
    if domain in DISPOSABLE_EMAIL_PROVIDERS:
        return SignalValue(kind="email-provenance", flags=("disposable",))
    if domain in FREE_EMAIL_PROVIDERS:
        return SignalValue(kind="email-provenance", flags=("free-provider",))

    flags = ["corporate"]
    company = _slug(company_name or "")
    label = _slug(registrable_domain_guess(domain).split(".")[0])
    if company and label and label not in company and company not in label:
        flags.append("domain-mismatch")
    return SignalValue(kind="email-provenance", flags=tuple(flags))


# --- job platform ---

KNOWN_JOB_BOARDS = frozenset({
    "linkedin.com", "indeed.com", "glassdoor.com", "monster.com", "ziprecruiter.com", "careerbuilder.com",
    "simplyhired.com", "dice.com", "wellfound.com", "angel.co", "greenhouse.io", "lever.co",
    "workday.com", "myworkdayjobs.com", "smartrecruiters.com", "ashbyhq.com", "jobvite.com",
    "seek.com.au", "reed.co.uk", "stepstone.de", "naukri.com", "upwork.com",
})

URL_SHORTENERS = frozenset({
    "bit.ly", "tinyurl.com", "t.co", "goo.gl", "ow.ly", "is.gd", "buff.ly", "rebrand.ly", "cutt.ly", "shorturl.at",
})


def job_platform(job_url: str | None, company_name: str | None = None) -> SignalValue | None:
    value = (job_url or "").strip()
    if not value:
        return None
    if not re.match(r"^[a-zA-Z][a-zA-Z\d+.-]*://", value):
        value = "https://" + value
    try:
        parsed = urlparse(value)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None
    if not host or "." not in host:
        return None

    reg = host if host in URL_SHORTENERS else registrable_domain_guess(host)
    flags: list[str] = []
    if reg in URL_SHORTENERS:
        flags.append("url-shortener")
    elif reg in KNOWN_JOB_BOARDS or host in KNOWN_JOB_BOARDS:
        flags.append("known-board")
    else:
        company = _slug(company_name or "")
        label = _slug(reg.split(".")[0])
        if company and label and (label in company or company in label):
            flags.append("company-careers")
        else:
            flags.append("unknown-host")
    if parsed.scheme == "http":
        flags.append("insecure")
    return SignalValue(kind="job-platform", flags=tuple(flags))


# --- company presence ---


def company_presence(
    company_name: str | None,
    recruiter_email: str | None = None,
    job_url: str | None = None,
) -> SignalValue | None:
    name = (company_name or "").strip()
    if not name:
        if not (recruiter_email or job_url):
            return None
        return SignalValue(kind="company-presence", flags=("name-missing",))

    email_signal = email_provenance(recruiter_email, name)
    platform_signal = job_platform(job_url, name)
    has_site = bool(
        (email_signal and email_signal.flags == ("corporate",))
        or (platform_signal and "company-careers" in (platform_signal.flags or ()))
    )
    return SignalValue(kind="company-presence", flags=("has-website",) if has_site else ("no-website",))
