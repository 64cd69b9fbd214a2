"""Trust score aggregation.

Turns a bag of independently computed signals into one ``AnalysisResult``.

Scoring runs in two stages:

1. Critical precedence. Before any weighting, every signal is checked for a
   critical condition (a signal marked ``severity="critical"``, a malware or
   phishing content flag, a positive malware scan, or a very new domain that
   also promises high daily yields). Any hit pins the score to 0 and the
   verdict to the worst category. This is a hard override, not a weighted vote.
2. Weighted sum. Otherwise the score starts at ``BASELINE_SCORE`` and every
   recognised signal adds a bounded, signed adjustment.

Signals that were expected but are missing, or carry no usable value, add
nothing and leave an ``info`` finding behind.

The result also carries the structured breakdowns from ``breakdowns.py``
for whichever signals were usable.

The aggregator is pure: no clock, no randomness, no I/O.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from .breakdowns import BREAKDOWNS, HIGH_YIELD_DAILY_PCT, format_pct, yearly_equivalent_pct
from .errors import InvalidInput
from .models import AnalysisResult, Finding, RedFlag, Severity, SignalValue, TargetType

logger = logging.getLogger(__name__)

BASELINE_SCORE = 60

# score >= BEST_THRESHOLD -> best verdict, >= MIDDLE_THRESHOLD -> middle, else worst.
BEST_THRESHOLD = 70
MIDDLE_THRESHOLD = 40

# Critical cross-signal rule: young domain + high promised daily yield
# (HIGH_YIELD_DAILY_PCT lives with the Ponzi breakdown).
NEW_DOMAIN_DAYS = 90

VERDICTS: dict[str, tuple[str, str, str]] = {
    "website": ("Legit", "Caution", "Scam"),
    "job": ("Likely Legitimate", "Possibly Suspicious", "Likely Scam"),
}

_RISK_LEVELS = ("Low Risk", "Medium Risk", "High Risk")
_PROBABILITY_LABELS = ("LOW", "MEDIUM", "HIGH")
_CRITICAL_RISK_LEVEL = "Critical"

_RECOMMENDATIONS: dict[str, tuple[str, str, str, str]] = {
    "website": (
        "No major warning signs found. Still use normal care with payments and personal data.",
        "Proceed with caution. Verify the business independently before paying or signing up.",
        "Avoid this website. Several strong scam indicators were found.",
        "Do not use this website. A critical threat was detected.",
    ),
    "job": (
        "This posting looks legitimate. Confirm the role on the company's official careers page.",
        "Be careful. Verify the recruiter and company before sharing personal details.",
        "This posting shows multiple scam patterns. Do not send money or personal documents.",
        "Do not engage. This posting matches a critical scam pattern.",
    ),
}

_SEVERITY_RANK = {"critical": 0, "warning": 1, "info": 2}


class UnusableSignal(ValueError):
    """A signal is present but its value can't be interpreted."""


@dataclass(frozen=True)
class Contribution:
    adjustment: float
    severity: Severity
    category: str
    text: str


@dataclass(frozen=True)
class SignalRule:
    kind: str
    label: str
    category: str
    evaluate: Callable[[SignalValue], list[Contribution]]
    max_penalty: float
    max_bonus: float


def _bounded(rule: SignalRule, contributions: Iterable[Contribution]) -> float:
    total = sum(c.adjustment for c in contributions)
    return max(-rule.max_penalty, min(rule.max_bonus, total))


def _require_number(value: SignalValue) -> float:
    if value.numeric_value is None or not math.isfinite(value.numeric_value):
        raise UnusableSignal(f"{value.kind} needs a finite numeric value")
    return float(value.numeric_value)


# --- signal rules ---


def _domain_age(value: SignalValue) -> list[Contribution]:
    days = _require_number(value)
    if days < 0:
        raise UnusableSignal("domain age can't be negative")
    days = int(days)
    if days < 30:
        return [Contribution(-18, "warning", "domain", f"Domain was registered only {days} days ago.")]
    if days < 180:
        return [Contribution(-10, "warning", "domain", f"Very new domain ({days} days old, under 6 months).")]
    if days < 730:
        return [Contribution(-3, "info", "domain", "Relatively new domain (under 2 years).")]
    return [Contribution(10, "info", "domain", f"Established domain ({days // 365}+ years).")]


_SSL_FLAGS: dict[str, Contribution] = {
    "valid": Contribution(8, "info", "security", "Connection is encrypted (valid SSL certificate)."),
    "present": Contribution(8, "info", "security", "Connection is encrypted (valid SSL certificate)."),
    "absent": Contribution(-8, "warning", "security", "No SSL certificate; traffic to this site is not encrypted."),
    "missing": Contribution(-8, "warning", "security", "No SSL certificate; traffic to this site is not encrypted."),
    "expired": Contribution(-10, "warning", "security", "SSL certificate has expired."),
    "self-signed": Contribution(-6, "warning", "security", "SSL certificate is self-signed."),
}


def _ssl_status(value: SignalValue) -> list[Contribution]:
    if value.flags:
        out = [_SSL_FLAGS[f] for f in value.flags if f in _SSL_FLAGS]
        if out:
            return out[:1]
        raise UnusableSignal(f"unrecognised SSL status {value.flags!r}")
    present = _require_number(value) > 0
    return [_SSL_FLAGS["valid" if present else "absent"]]


# Flags that force the critical override; handled in the precedence stage.
CRITICAL_CONTENT_FLAGS: dict[str, tuple[str, str]] = {
    "malware": ("malware", "Malware or malicious code was found on the page."),
    "phishing": ("phishing", "Page imitates a login or payment form of another brand (phishing)."),
}

CONTENT_FLAGS: dict[str, Contribution] = {
    "guaranteed-returns": Contribution(-15, "warning", "financial", "Promises guaranteed investment returns."),
    "high-yield": Contribution(-12, "warning", "financial", "Advertises unusually high investment yields."),
    "referral-pyramid": Contribution(-12, "warning", "financial", "Rewards recruiting new members (pyramid structure)."),
    "crypto-payment-only": Contribution(-8, "warning", "payment", "Asks for payment in cryptocurrency or gift cards."),
    "upfront-fee": Contribution(-15, "warning", "payment", "Asks for an upfront fee (training, equipment or registration)."),
    "check-cashing": Contribution(-15, "warning", "payment", "Involves depositing checks or forwarding money."),
    "urgency": Contribution(-6, "warning", "pressure", "Uses pressure tactics (countdowns, limited-time offers)."),
    "off-platform-interview": Contribution(-10, "warning", "communication", "Interview happens over Telegram, WhatsApp or text chat."),
    "no-experience-high-pay": Contribution(-8, "warning", "compensation", "Promises high pay with no experience required."),
    "personal-info-request": Contribution(-10, "warning", "identity", "Requests banking or identity documents up front."),
    "no-contact-info": Contribution(-6, "warning", "identity", "No contact information could be found."),
    "stock-images": Contribution(-4, "warning", "content", "Team or product photos appear to be stock images."),
    "about-us": Contribution(3, "info", "content", "An About Us section is present."),
    "terms-of-service": Contribution(3, "info", "content", "Terms of service are published."),
    "contact-info": Contribution(3, "info", "content", "Contact information is listed."),
    "physical-address": Contribution(3, "info", "content", "A physical address is listed."),
}


def _content_flags(value: SignalValue) -> list[Contribution]:
    flags = value.flags or ()
    out = [CONTENT_FLAGS[f] for f in dict.fromkeys(flags) if f in CONTENT_FLAGS]
    if not out and not any(f in CRITICAL_CONTENT_FLAGS for f in flags):
        return [Contribution(0, "info", "content", "No suspicious keywords or patterns were found in the content.")]
    return out


def _sentiment(value: SignalValue) -> list[Contribution]:
    polarity = _require_number(value)
    if not -1.0 <= polarity <= 1.0:
        raise UnusableSignal("sentiment polarity must be within [-1, 1]")
    adjustment = polarity * 10
    if polarity <= -0.3:
        return [Contribution(adjustment, "warning", "reputation", "Sentiment about this target is predominantly negative.")]
    if polarity >= 0.3:
        return [Contribution(adjustment, "info", "reputation", "Sentiment about this target is mostly positive.")]
    return [Contribution(adjustment, "info", "reputation", "Sentiment about this target is mixed or neutral.")]


_SOCIAL_FLAGS: dict[str, Contribution] = {
    "scam-reports": Contribution(-12, "warning", "reputation", "People online report this as a scam."),
    "withdrawal-complaints": Contribution(-12, "warning", "financial", "Users complain they can't withdraw their money."),
    "low-review-score": Contribution(-6, "warning", "reputation", "Review sites give this a low rating."),
    "high-review-score": Contribution(5, "info", "reputation", "Review sites give this a good rating."),
}


def _social_mentions(value: SignalValue) -> list[Contribution]:
    out = [_SOCIAL_FLAGS[f] for f in dict.fromkeys(value.flags or ()) if f in _SOCIAL_FLAGS]
    if value.numeric_value is not None:
        mentions = int(max(0.0, _require_number(value)))
        if mentions >= 50:
            out.append(Contribution(5, "info", "reputation", f"Widely discussed online ({mentions} mentions)."))
        elif mentions == 0:
            out.append(Contribution(-3, "info", "reputation", "No social media presence was found."))
        else:
            out.append(Contribution(0, "info", "reputation", f"Limited social media presence ({mentions} mentions)."))
    if not out:
        raise UnusableSignal("social mentions need a count or known flags")
    return out


def _yield_promise(value: SignalValue) -> list[Contribution]:
    daily = _require_number(value)
    if daily <= 0:
        return []
    yearly = format_pct(yearly_equivalent_pct(daily))
    if daily >= HIGH_YIELD_DAILY_PCT:
        return [Contribution(
            -20, "warning", "financial",
            f"Promises {daily:g}% daily returns (about {yearly} a year compounded); this cannot be sustained.",
        )]
    if daily >= 0.1:
        return [Contribution(-8, "warning", "financial", f"Promises {daily:g}% daily returns (about {yearly} a year compounded).")]
    return [Contribution(0, "info", "financial", f"Mentions returns of {daily:g}% per day.")]


def _malware(value: SignalValue) -> list[Contribution]:
    if _malware_detected(value):
        # reported by the precedence stage
        return []
    return [Contribution(0, "info", "malware", "Malware scan found nothing.")]


def _malware_detected(value: SignalValue) -> bool:
    if value.flags and any(f in ("detected", "malware") for f in value.flags):
        return True
    return value.numeric_value is not None and value.numeric_value > 0


_EMAIL_FLAGS: dict[str, Contribution] = {
    "corporate": Contribution(8, "info", "identity", "Recruiter uses a corporate email domain."),
    "free-provider": Contribution(-12, "warning", "identity", "Recruiter uses a free email provider instead of a company domain."),
    "disposable": Contribution(-20, "warning", "identity", "Recruiter uses a disposable email address."),
    "domain-mismatch": Contribution(-8, "warning", "identity", "Recruiter email domain doesn't match the company name."),
    "invalid": Contribution(-10, "warning", "identity", "Recruiter email address is malformed."),
}


def _email_provenance(value: SignalValue) -> list[Contribution]:
    out = [_EMAIL_FLAGS[f] for f in dict.fromkeys(value.flags or ()) if f in _EMAIL_FLAGS]
    if not out:
        raise UnusableSignal(f"unrecognised email provenance {value.flags!r}")
    return out


def _salary(value: SignalValue) -> list[Contribution]:
    yearly = _require_number(value)
    if yearly <= 0:
        raise UnusableSignal("salary must be positive")
    shown = f"${yearly:,.0f}"
    if yearly >= 250_000:
        return [Contribution(-15, "warning", "compensation", f"Offered pay (about {shown} a year) is unrealistically high.")]
    if yearly >= 150_000:
        return [Contribution(-5, "warning", "compensation", f"Offered pay (about {shown} a year) is unusually high.")]
    if yearly < 15_000:
        return [Contribution(-3, "info", "compensation", f"Offered pay (about {shown} a year) is unusually low.")]
    return [Contribution(5, "info", "compensation", f"Offered pay (about {shown} a year) is in a normal range.")]


_PLATFORM_FLAGS: dict[str, Contribution] = {
    "known-board": Contribution(10, "info", "platform", "Posted on a well-known job board."),
    "company-careers": Contribution(6, "info", "platform", "Posted on the company's own careers site."),
    "url-shortener": Contribution(-10, "warning", "platform", "Job link hides its destination behind a URL shortener."),
    "insecure": Contribution(-4, "warning", "platform", "Job link does not use HTTPS."),
    "unknown-host": Contribution(-4, "info", "platform", "Job is hosted on an unrecognised site."),
}


def _job_platform(value: SignalValue) -> list[Contribution]:
    out = [_PLATFORM_FLAGS[f] for f in dict.fromkeys(value.flags or ()) if f in _PLATFORM_FLAGS]
    if not out:
        raise UnusableSignal(f"unrecognised job platform {value.flags!r}")
    return out


_COMPANY_FLAGS: dict[str, Contribution] = {
    "has-website": Contribution(6, "info", "identity", "The company has a website of its own."),
    "no-website": Contribution(-6, "warning", "identity", "No company website could be tied to this posting."),
    "name-missing": Contribution(-8, "warning", "identity", "The posting doesn't name the hiring company."),
}


def _company_presence(value: SignalValue) -> list[Contribution]:
    out = [_COMPANY_FLAGS[f] for f in dict.fromkeys(value.flags or ()) if f in _COMPANY_FLAGS]
    if not out:
        raise UnusableSignal(f"unrecognised company presence {value.flags!r}")
    return out


DEFAULT_RULES: tuple[SignalRule, ...] = (
    SignalRule("malware", "Malware scan", "malware", _malware, max_penalty=0, max_bonus=0),
    SignalRule("domain-age", "Domain age", "domain", _domain_age, max_penalty=18, max_bonus=10),
    SignalRule("ssl-status", "SSL certificate", "security", _ssl_status, max_penalty=10, max_bonus=8),
    SignalRule("yield-promise", "Promised returns", "financial", _yield_promise, max_penalty=20, max_bonus=0),
    SignalRule("email-provenance", "Recruiter email", "identity", _email_provenance, max_penalty=25, max_bonus=8),
    SignalRule("salary-reasonableness", "Salary check", "compensation", _salary, max_penalty=15, max_bonus=5),
    SignalRule("job-platform", "Job platform", "platform", _job_platform, max_penalty=14, max_bonus=10),
    SignalRule("company-presence", "Company presence", "identity", _company_presence, max_penalty=12, max_bonus=6),
    SignalRule("content-flags", "Content scan", "content", _content_flags, max_penalty=35, max_bonus=12),
    SignalRule("sentiment", "Sentiment analysis", "reputation", _sentiment, max_penalty=10, max_bonus=10),
    SignalRule("social-mentions", "Social mentions", "reputation", _social_mentions, max_penalty=25, max_bonus=10),
)

EXPECTED_KINDS: dict[str, tuple[str, ...]] = {
    "website": ("domain-age", "ssl-status", "content-flags", "sentiment", "social-mentions"),
    "job": ("email-provenance", "salary-reasonableness", "job-platform", "content-flags", "company-presence"),
}


def verdict_for(score: int, target_type: TargetType = "website") -> str:
    best, middle, worst = VERDICTS[target_type]
    if score >= BEST_THRESHOLD:
        return best
    if score >= MIDDLE_THRESHOLD:
        return middle
    return worst


def _tier(score: int) -> int:
    if score >= BEST_THRESHOLD:
        return 0
    if score >= MIDDLE_THRESHOLD:
        return 1
    return 2


def _parse_signals(signals: Any) -> list[tuple[str, SignalValue]]:
    if not isinstance(signals, Mapping):
        raise InvalidInput("signals", "expected a mapping of signal name to signal value")
    if not signals:
        raise InvalidInput("signals", "at least one signal is required")

    parsed: list[tuple[str, SignalValue]] = []
    for name in sorted(signals, key=str):
        raw = signals[name]
        if isinstance(raw, SignalValue):
            value = raw
        else:
            try:
                value = SignalValue.model_validate(raw)
            except ValidationError as e:
                raise InvalidInput(f"signals.{name}", f"malformed signal value ({e.error_count()} error(s))") from e
        # JSON numbers like 1e400 parse to inf
        if value.numeric_value is not None and not math.isfinite(value.numeric_value):
            raise InvalidInput(f"signals.{name}", "numericValue must be a finite number")
        parsed.append((str(name), value))
    return parsed


class ScoreAggregator:
    """Combines named signals into an ``AnalysisResult``.

    Rules are evaluated in registration order; that order is also the
    tie-break for findings of equal severity.
    """

    def __init__(self, rules: Iterable[SignalRule] = DEFAULT_RULES):
        self._rules: dict[str, SignalRule] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: SignalRule) -> None:
        if rule.kind in self._rules:
            raise ValueError(f"rule for {rule.kind!r} already registered")
        self._rules[rule.kind] = rule

    @property
    def kinds(self) -> tuple[str, ...]:
        return tuple(self._rules)

    def _critical(self, signals: list[tuple[str, SignalValue]]) -> list[tuple[int, Contribution]]:
        order = {kind: i for i, kind in enumerate(self._rules)}
        hits: list[tuple[int, Contribution]] = []

        def hit(kind: str, contribution: Contribution) -> None:
            if all(c != contribution for _, c in hits):
                hits.append((order.get(kind, len(order)), contribution))

        domain_days: float | None = None
        daily_yield: float | None = None

        for name, value in signals:
            rule = self._rules.get(value.kind)
            if value.severity == "critical":
                category, label = (rule.category, rule.label) if rule else (value.kind, name)
                hit(value.kind, Contribution(0, "critical", category, f"{label} reported a critical problem ({name})."))
            if value.kind == "malware" and _malware_detected(value):
                hit(value.kind, Contribution(0, "critical", "malware", CRITICAL_CONTENT_FLAGS["malware"][1]))
            if value.kind == "content-flags":
                for flag in value.flags or ():
                    if flag in CRITICAL_CONTENT_FLAGS:
                        category, text = CRITICAL_CONTENT_FLAGS[flag]
                        hit(value.kind, Contribution(0, "critical", category, text))
            if value.kind == "domain-age" and value.numeric_value is not None and value.numeric_value >= 0:
                domain_days = value.numeric_value
            if value.kind == "yield-promise" and value.numeric_value is not None:
                daily_yield = value.numeric_value

        if (
            domain_days is not None
            and daily_yield is not None
            and domain_days < NEW_DOMAIN_DAYS
            and daily_yield >= HIGH_YIELD_DAILY_PCT
        ):
            hit("yield-promise", Contribution(
                0, "critical", "financial",
                f"A {int(domain_days)}-day-old domain promising {daily_yield:g}% daily returns matches a Ponzi pattern.",
            ))
        return hits

    def aggregate(
        self,
        target: str,
        signals: Mapping[str, SignalValue | dict[str, Any]],
        target_type: TargetType = "website",
        ai_analysis: str | None = None,
    ) -> AnalysisResult:
        if target_type not in VERDICTS:
            raise InvalidInput("targetType", f"unknown target type {target_type!r}")
        parsed = _parse_signals(signals)
        recognised = [(name, value) for name, value in parsed if value.kind in self._rules]
        # A critical severity overrides on its own, whatever the kind.
        if not recognised and not any(value.severity == "critical" for _, value in parsed):
            raise InvalidInput("signals", "no recognised signal kinds")
        for name, value in parsed:
            if value.kind not in self._rules:
                logger.debug("ignoring unrecognised signal %s (kind=%s)", name, value.kind)

        # (severity rank, rule index, sequence) -> contribution
        ranked: list[tuple[tuple[int, int, int], Contribution]] = []
        seq = 0

        def emit(rule_index: int, contribution: Contribution) -> None:
            nonlocal seq
            ranked.append(((_SEVERITY_RANK[contribution.severity], rule_index, seq), contribution))
            seq += 1

        critical = self._critical(parsed)
        for rule_index, contribution in critical:
            emit(rule_index, contribution)

        by_kind: dict[str, list[tuple[str, SignalValue]]] = {}
        for name, value in recognised:
            by_kind.setdefault(value.kind, []).append((name, value))

        expected = EXPECTED_KINDS.get(target_type, ())
        running = float(BASELINE_SCORE)
        for rule_index, (kind, rule) in enumerate(self._rules.items()):
            present = by_kind.get(kind, [])
            usable = [(n, v) for n, v in present if not v.is_empty()]
            if not usable:
                if present or kind in expected:
                    emit(rule_index, Contribution(0, "info", rule.category, f"{rule.label} could not be checked; treated as neutral."))
                continue
            for name, value in usable:
                try:
                    contributions = rule.evaluate(value)
                except UnusableSignal as e:
                    logger.info("signal %s unusable: %s", name, e)
                    emit(rule_index, Contribution(0, "info", rule.category, f"{rule.label} returned an unusable value; treated as neutral."))
                    continue
                if value.severity == "warning" and not any(c.severity == "warning" for c in contributions):
                    contributions = contributions + [
                        Contribution(-5, "warning", rule.category, f"{rule.label} was flagged as a warning by its source.")
                    ]
                running += _bounded(rule, contributions)
                for contribution in contributions:
                    emit(rule_index, contribution)

        if critical:
            score = 0
            tier = 2
            risk_level = _CRITICAL_RISK_LEVEL
            recommendation = _RECOMMENDATIONS[target_type][3]
            scam_probability = "CRITICAL - 100%"
        else:
            # Floor so fractional adjustments never lift a score over a threshold.
            score = max(0, min(100, math.floor(running)))
            tier = _tier(score)
            risk_level = _RISK_LEVELS[tier]
            recommendation = _RECOMMENDATIONS[target_type][tier]
            scam_probability = f"{_PROBABILITY_LABELS[tier]} - {100 - score}%"

        breakdowns: dict[str, Any] = {}
        for kind, (field_name, build) in BREAKDOWNS.items():
            usable = [v for _, v in by_kind.get(kind, []) if not v.is_empty()]
            record = build(usable[0]) if usable else None
            if record is not None:
                breakdowns[field_name] = record

        ranked.sort(key=lambda item: item[0])
        ordered = [c for _, c in ranked]
        findings = tuple(Finding(severity=c.severity, text=c.text) for c in ordered)
        red_flags = tuple(
            RedFlag(severity=c.severity, category=c.category, text=c.text)
            for c in ordered
            if c.severity in ("critical", "warning")
        )

        return AnalysisResult(
            target=target,
            target_type=target_type,
            score=score,
            verdict=VERDICTS[target_type][tier],
            risk_level=risk_level,
            recommendation=recommendation,
            findings=findings,
            red_flags=red_flags,
            total_red_flags=len(red_flags),
            critical_flags=sum(1 for f in red_flags if f.severity == "critical"),
            scam_probability=scam_probability,
            ai_analysis=ai_analysis,
            **breakdowns,
        )


_default = ScoreAggregator()


def aggregate(
    target: str,
    signals: Mapping[str, SignalValue | dict[str, Any]],
    target_type: TargetType = "website",
    ai_analysis: str | None = None,
) -> AnalysisResult:
    return _default.aggregate(target, signals, target_type=target_type, ai_analysis=ai_analysis)
