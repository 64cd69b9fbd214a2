"""Decides which parts of an analysis a viewer gets to see.

``score``, ``verdict`` and the target are always visible. Everything else is
reserved for signed-in viewers.

Two modes exist:

- ``server``: gated fields are left out of the payload entirely. Use this
  when the details must not reach anonymous callers.
- ``client``: the whole result is sent and ``locked`` lists the fields the UI
  should hide behind its sign-in overlay. This only stages the reveal; the
  data is still on the wire, so it is not an access control.
"""
from __future__ import annotations

from typing import Literal

from .models import AnalysisResult, CommentSummary, DisclosedResult, ViewerState

GatingMode = Literal["server", "client"]
GATING_MODES: tuple[str, ...] = ("server", "client")

# Wire names of every gated field, in payload order.
GATED_FIELDS: tuple[str, ...] = (
    "riskLevel",
    "recommendation",
    "findings",
    "redFlags",
    "totalRedFlags",
    "criticalFlags",
    "scamProbability",
    "aiAnalysis",
    "ponziCalculation",
    "contentAnalysis",
    "sentiment",
    "emailAnalysis",
    "salaryAnalysis",
    "platformAnalysis",
    "companyVerification",
    "comments",
)


class DisclosurePolicy:
    def __init__(self, mode: GatingMode = "server"):
        if mode not in GATING_MODES:
            raise ValueError(f"unknown gating mode {mode!r}; expected one of {GATING_MODES}")
        self.mode = mode

    def apply(
        self,
        result: AnalysisResult,
        viewer: ViewerState,
        comments: CommentSummary | None = None,
    ) -> DisclosedResult:
        visible = DisclosedResult(
            target=result.target,
            target_type=result.target_type,
            score=result.score,
            verdict=result.verdict,
        )
        if viewer.authenticated or self.mode == "client":
            visible = visible.model_copy(update={
                "risk_level": result.risk_level,
                "recommendation": result.recommendation,
                "findings": list(result.findings),
                "red_flags": list(result.red_flags),
                "total_red_flags": result.total_red_flags,
                "critical_flags": result.critical_flags,
                "scam_probability": result.scam_probability,
                "ai_analysis": result.ai_analysis,
                "ponzi_calculation": result.ponzi_calculation,
                "content_analysis": result.content_analysis,
                "sentiment": result.sentiment,
                "email_analysis": result.email_analysis,
                "salary_analysis": result.salary_analysis,
                "platform_analysis": result.platform_analysis,
                "company_verification": result.company_verification,
                "comments": comments.model_copy(deep=True) if comments is not None else None,
            })
        if not viewer.authenticated and self.mode == "client":
            visible = visible.model_copy(update={"locked": list(GATED_FIELDS)})
        return visible
