"""
Tests for review summaries, submission validation and the comment store.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from platform_analyzer.comments import (
    CommentNotFound,
    CommentStore,
    normalize_domain,
    summarize,
    validate_submission,
)
from platform_analyzer.errors import InvalidInput
from platform_analyzer.models import Comment, CommentCreate

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _comment(i: int, rating: int, experience: str = "positive", scammed: bool = False) -> Comment:
    return Comment(
        id=i,
        domain="example.com",
        user_name=f"user{i}",
        rating=rating,
        experience=experience,
        comment="text",
        was_scammed=scammed,
        timestamp=T0,
    )


def _submission(**overrides) -> CommentCreate:
    data = {
        "url": "https://www.example.com/shop",
        "user_name": "Ann",
        "rating": 4,
        "experience": "positive",
        "comment": "Order arrived on time.",
        "was_scammed": False,
    }
    data.update(overrides)
    return CommentCreate(**data)


def test_empty_summary():
    summary = summarize([])
    assert summary.total_comments == 0
    assert summary.average_rating == 0
    assert summary.scam_reports == 0
    assert summary.experience_breakdown.model_dump() == {"positive": 0, "neutral": 0, "negative": 0}


def test_summary_counts_and_mean():
    summary = summarize([
        _comment(1, 1, "negative", scammed=True),
        _comment(2, 2, "neutral"),
        _comment(3, 2, "positive"),
    ])
    assert summary.total_comments == 3
    assert summary.average_rating == pytest.approx(5 / 3)
    assert summary.scam_reports == 1
    assert summary.experience_breakdown.model_dump() == {"positive": 1, "neutral": 1, "negative": 1}


def test_unrecognised_experience_is_dropped_from_breakdown():
    summary = summarize([_comment(1, 5, "positive"), _comment(2, 3, "meh"), _comment(3, 4, "")])
    breakdown = summary.experience_breakdown.model_dump()
    assert summary.total_comments == 3
    assert sum(breakdown.values()) == 1
    assert sum(breakdown.values()) <= summary.total_comments


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"user_name": ""}, "user_name"),
        ({"user_name": "   "}, "user_name"),
        ({"comment": ""}, "comment"),
        ({"rating": 0}, "rating"),
        ({"rating": 6}, "rating"),
        ({"experience": "great"}, "experience"),
    ],
)
def test_invalid_submissions_are_rejected(overrides, field):
    store = CommentStore()
    with pytest.raises(InvalidInput) as exc:
        store.add(_submission(**overrides))
    assert exc.value.field == field
    assert store.list_for("example.com") == []


def test_validation_trims_text():
    cleaned = validate_submission(_submission(user_name="  Ann ", comment=" ok "))
    assert cleaned.user_name == "Ann"
    assert cleaned.comment == "ok"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://www.Example.com/path?q=1", "example.com"),
        ("example.com", "example.com"),
        ("http://shop.example.co.uk", "shop.example.co.uk"),
    ],
)
def test_normalize_domain(raw, expected):
    assert normalize_domain(raw) == expected


@pytest.mark.parametrize("raw", ["", "localhost", "http://[oops/", "[::1"])
def test_normalize_domain_rejects_bad_input(raw):
    with pytest.raises(InvalidInput) as exc:
        normalize_domain(raw)
    assert exc.value.field == "url"


def test_comments_are_filed_by_domain_newest_first():
    store = CommentStore()
    first = store.add(_submission(), now=T0)
    second = store.add(_submission(url="example.com", rating=2, experience="negative"), now=T0 + timedelta(hours=1))
    store.add(_submission(url="other.org"), now=T0)

    listed = store.list_for("www.example.com")
    assert [c.id for c in listed] == [second.id, first.id]
    assert store.summary_for("example.com").average_rating == 3.0


def test_mark_helpful_is_additive():
    store = CommentStore()
    c = store.add(_submission())
    store.mark_helpful("example.com", c.id)
    updated = store.mark_helpful("example.com", c.id)
    assert updated.helpful_count == 2


def test_concurrent_helpful_votes_are_not_lost():
    store = CommentStore()
    c = store.add(_submission())

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(lambda _: store.mark_helpful("example.com", c.id), range(500)))

    assert store.list_for("example.com")[0].helpful_count == 500


def test_mark_helpful_unknown_comment():
    store = CommentStore()
    c = store.add(_submission())
    with pytest.raises(CommentNotFound):
        store.mark_helpful("example.com", c.id + 1)
    with pytest.raises(CommentNotFound):
        store.mark_helpful("other.org", c.id)


def test_listed_comments_are_copies():
    store = CommentStore()
    c = store.add(_submission())
    store.list_for("example.com")[0].helpful_count = 99
    assert store.list_for("example.com")[0].helpful_count == 0
    assert c.helpful_count == 0
