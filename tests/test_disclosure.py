"""
Tests for result disclosure gating in server and client modes.
"""

from __future__ import annotations

import pytest

from platform_analyzer.disclosure import GATED_FIELDS, DisclosurePolicy
from platform_analyzer.models import CommentSummary, ViewerState
from platform_analyzer.scoring import aggregate

ANONYMOUS = ViewerState(authenticated=False)
SIGNED_IN = ViewerState(authenticated=True)


@pytest.fixture
def result():
    return aggregate(
        "example.com",
        {
            "domainAge": {"kind": "domain-age", "numericValue": 40},
            "ssl": {"kind": "ssl-status", "flags": ["absent"]},
        },
        ai_analysis="New domain without encryption.",
    )


@pytest.fixture
def summary():
    return CommentSummary(total_comments=2, average_rating=3.5, scam_reports=1)


def test_server_mode_hides_details_from_anonymous_viewers(result, summary):
    visible = DisclosurePolicy("server").apply(result, ANONYMOUS, comments=summary)
    payload = visible.model_dump(by_alias=True, exclude_none=True)

    assert payload == {
        "target": "example.com",
        "targetType": "website",
        "score": result.score,
        "verdict": "Caution",
        "locked": [],
    }


def test_signed_in_viewer_sees_everything(result, summary):
    visible = DisclosurePolicy("server").apply(result, SIGNED_IN, comments=summary)

    assert visible.findings == list(result.findings)
    assert visible.red_flags == list(result.red_flags)
    assert visible.ai_analysis == "New domain without encryption."
    assert visible.risk_level == "Medium Risk"
    assert visible.comments == summary
    assert visible.locked == []


def test_apply_is_idempotent_and_leaves_inputs_alone(result, summary):
    policy = DisclosurePolicy("server")
    before = result.model_dump_json()
    summary_before = summary.model_dump_json()

    first = policy.apply(result, ANONYMOUS, comments=summary)
    second = policy.apply(result, ANONYMOUS, comments=summary)
    assert first == second

    signed_in = policy.apply(result, SIGNED_IN, comments=summary)
    assert signed_in.comments is not summary
    assert result.model_dump_json() == before
    assert summary.model_dump_json() == summary_before


def test_client_mode_sends_everything_but_marks_locked_fields(result, summary):
    visible = DisclosurePolicy("client").apply(result, ANONYMOUS, comments=summary)

    assert visible.findings == list(result.findings)
    assert visible.comments == summary
    assert visible.locked == list(GATED_FIELDS)


def test_client_mode_unlocks_for_signed_in_viewers(result):
    visible = DisclosurePolicy("client").apply(result, SIGNED_IN)
    assert visible.locked == []
    assert visible.findings is not None


def test_score_and_verdict_are_never_gated(result):
    for mode in ("server", "client"):
        for viewer in (ANONYMOUS, SIGNED_IN):
            visible = DisclosurePolicy(mode).apply(result, viewer)
            assert (visible.score, visible.verdict, visible.target) == (result.score, result.verdict, result.target)


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        DisclosurePolicy("overlay")
