from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["critical", "warning", "info"]
TargetType = Literal["website", "job"]
Experience = Literal["positive", "neutral", "negative"]


class SignalValue(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: str = Field(..., min_length=1)
    numeric_value: float | None = Field(None, alias="numericValue")
    flags: tuple[str, ...] | None = None
    severity: Severity | None = None

    def is_empty(self) -> bool:
        return self.numeric_value is None and not self.flags and self.severity is None


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    severity: Severity = Field(..., alias="type")
    text: str


class RedFlag(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    severity: Literal["critical", "warning"] = Field(..., alias="type")
    category: str
    text: str


RiskTier = Literal["Low", "Medium", "High"]


class _Breakdown(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class PonziCalculation(_Breakdown):
    promised_return: str = Field(..., alias="promisedReturn")
    yearly_equivalent: str = Field(..., alias="yearlyEquivalent")
    sustainability: str
    collapse_days: str = Field(..., alias="collapseDays")


class ContentAnalysis(_Breakdown):
    about_us_found: bool = Field(False, alias="aboutUsFound")
    terms_of_service_found: bool = Field(False, alias="termsOfServiceFound")
    contact_info_found: bool = Field(False, alias="contactInfoFound")
    physical_address_found: bool = Field(False, alias="physicalAddressFound")
    stock_images_detected: bool = Field(False, alias="stockImagesDetected")
    suspicious_patterns: tuple[str, ...] = Field((), alias="suspiciousPatterns")


class SentimentBreakdown(_Breakdown):
    """Percentages that add up to 100."""

    positive: int
    neutral: int
    negative: int


class EmailAnalysis(_Breakdown):
    is_corporate: bool = Field(..., alias="isCorporate")
    provider: str
    domain_matches_company: bool = Field(True, alias="domainMatchesCompany")
    risk: RiskTier


class SalaryAnalysis(_Breakdown):
    yearly_equivalent: str = Field(..., alias="yearlyEquivalent")
    is_reasonable: bool = Field(..., alias="isReasonable")
    assessment: str
    risk: RiskTier


class PlatformAnalysis(_Breakdown):
    platform: str
    is_legitimate: bool = Field(..., alias="isLegitimate")
    trust_level: RiskTier = Field(..., alias="trustLevel")


class CompanyVerification(_Breakdown):
    name_provided: bool = Field(..., alias="nameProvided")
    has_website: bool = Field(..., alias="hasWebsite")
    legitimacy_score: int = Field(..., ge=0, le=100, alias="legitimacyScore")


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    target: str
    target_type: TargetType = Field("website", alias="targetType")
    score: int = Field(..., ge=0, le=100)
    verdict: str
    risk_level: str = Field(..., alias="riskLevel")
    recommendation: str
    findings: tuple[Finding, ...] = ()
    red_flags: tuple[RedFlag, ...] = Field((), alias="redFlags")
    total_red_flags: int = Field(0, alias="totalRedFlags")
    critical_flags: int = Field(0, alias="criticalFlags")
    scam_probability: str = Field("", alias="scamProbability")
    ai_analysis: str | None = Field(None, alias="aiAnalysis")
    # Per-signal breakdowns; None when the signal wasn't available.
    ponzi_calculation: PonziCalculation | None = Field(None, alias="ponziCalculation")
    content_analysis: ContentAnalysis | None = Field(None, alias="contentAnalysis")
    sentiment: SentimentBreakdown | None = None
    email_analysis: EmailAnalysis | None = Field(None, alias="emailAnalysis")
    salary_analysis: SalaryAnalysis | None = Field(None, alias="salaryAnalysis")
    platform_analysis: PlatformAnalysis | None = Field(None, alias="platformAnalysis")
    company_verification: CompanyVerification | None = Field(None, alias="companyVerification")


class ViewerState(BaseModel):
    model_config = ConfigDict(frozen=True)

    authenticated: bool = False


class ExperienceBreakdown(BaseModel):
    positive: int = 0
    neutral: int = 0
    negative: int = 0


class CommentSummary(BaseModel):
    total_comments: int = 0
    average_rating: float = 0.0
    scam_reports: int = 0
    experience_breakdown: ExperienceBreakdown = Field(default_factory=ExperienceBreakdown)


class CommentCreate(BaseModel):
    url: str = Field(..., min_length=1)
    user_name: str = ""
    rating: int = 5
    experience: str = "positive"
    comment: str = ""
    was_scammed: bool = False


class Comment(BaseModel):
    id: int
    domain: str
    user_name: str
    rating: int
    experience: str
    comment: str
    was_scammed: bool = False
    helpful_count: int = 0
    timestamp: datetime


class CommentsResponse(CommentSummary):
    domain: str
    comments: list[Comment]


class HelpfulResponse(BaseModel):
    id: int
    helpful_count: int


class DisclosedResult(BaseModel):
    """What a viewer is allowed to see of one analysis."""

    model_config = ConfigDict(populate_by_name=True)

    target: str
    target_type: TargetType = Field(..., alias="targetType")
    score: int
    verdict: str
    risk_level: str | None = Field(None, alias="riskLevel")
    recommendation: str | None = None
    findings: list[Finding] | None = None
    red_flags: list[RedFlag] | None = Field(None, alias="redFlags")
    total_red_flags: int | None = Field(None, alias="totalRedFlags")
    critical_flags: int | None = Field(None, alias="criticalFlags")
    scam_probability: str | None = Field(None, alias="scamProbability")
    ai_analysis: str | None = Field(None, alias="aiAnalysis")
    ponzi_calculation: PonziCalculation | None = Field(None, alias="ponziCalculation")
    content_analysis: ContentAnalysis | None = Field(None, alias="contentAnalysis")
    sentiment: SentimentBreakdown | None = None
    email_analysis: EmailAnalysis | None = Field(None, alias="emailAnalysis")
    salary_analysis: SalaryAnalysis | None = Field(None, alias="salaryAnalysis")
    platform_analysis: PlatformAnalysis | None = Field(None, alias="platformAnalysis")
    company_verification: CompanyVerification | None = Field(None, alias="companyVerification")
    comments: CommentSummary | None = None
    # Client gating mode: fields the UI must keep behind its sign-in overlay.
    locked: list[str] = []


class AnalyzeRequest(BaseModel):
    url: str = Field(..., min_length=1)
    # Page text already fetched by the caller; keyword and sentiment signals run on it.
    content: str | None = Field(None, max_length=500_000)
    # Pre-computed signals (e.g. WHOIS domain age, SSL status) keyed by name.
    signals: dict[str, SignalValue] = Field(default_factory=dict)
    include_ai_analysis: bool = Field(True)


class JobAnalyzeRequest(BaseModel):
    job_url: str = ""
    job_description: str = Field("", max_length=200_000)
    company_name: str = ""
    salary: str = ""
    recruiter_email: str = ""
    signals: dict[str, SignalValue] = Field(default_factory=dict)
    include_ai_analysis: bool = Field(True)


class ScoreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target: str = Field(..., min_length=1)
    target_type: TargetType = Field("website", alias="targetType")
    signals: dict[str, SignalValue]


class AnalyzeResponse(BaseModel):
    result: DisclosedResult
    analyzed_at: str
    timings_ms: dict[str, int]
    warnings: list[str] = []
