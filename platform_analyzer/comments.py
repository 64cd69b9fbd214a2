"""User reviews: validation, summary statistics and an in-process store.

The summary is never stored. It is recomputed from the current comments on
every read.

Helpful votes are additive and not de-duplicated per voter: every call adds
exactly one.
"""
from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timezone
from typing import Iterable
from urllib.parse import urlparse

from .errors import InvalidInput
from .models import Comment, CommentCreate, CommentSummary, ExperienceBreakdown

logger = logging.getLogger(__name__)

EXPERIENCES = ("positive", "neutral", "negative")
MIN_RATING = 1
MAX_RATING = 5


def normalize_domain(raw: str) -> str:
    """Reduce a URL or host to the bare hostname reviews are filed under."""
    value = (raw or "").strip()
    if not value:
        raise InvalidInput("url", "a website URL or domain is required")
    if not re.match(r"^[a-zA-Z][a-zA-Z\d+.-]*://", value):
        value = "https://" + value
    try:
        host = (urlparse(value).hostname or "").lower().rstrip(".")
    except ValueError:
        raise InvalidInput("url", "please enter a valid website domain") from None
    if host.startswith("www."):
        host = host[4:]
    if not host or "." not in host:
        raise InvalidInput("url", "please enter a valid website domain")
    return host


def summarize(comments: Iterable[Comment]) -> CommentSummary:
    total = 0
    rating_sum = 0
    scam_reports = 0
    buckets = dict.fromkeys(EXPERIENCES, 0)
    for c in comments:
        total += 1
        rating_sum += c.rating
        if c.was_scammed:
            scam_reports += 1
        # unrecognised experiences still count towards the total, just no bucket
        if c.experience in buckets:
            buckets[c.experience] += 1

    return CommentSummary(
        total_comments=total,
        average_rating=rating_sum / total if total else 0.0,
        scam_reports=scam_reports,
        experience_breakdown=ExperienceBreakdown(**buckets),
    )


def validate_submission(data: CommentCreate) -> CommentCreate:
    """Reject bad submissions outright. Ratings are never clamped."""
    user_name = data.user_name.strip()
    text = data.comment.strip()
    if not user_name:
        raise InvalidInput("user_name", "name is required")
    if not text:
        raise InvalidInput("comment", "comment text is required")
    if isinstance(data.rating, bool) or not isinstance(data.rating, int):
        raise InvalidInput("rating", "rating must be a whole number")
    if not MIN_RATING <= data.rating <= MAX_RATING:
        raise InvalidInput("rating", f"rating must be between {MIN_RATING} and {MAX_RATING}")
    if data.experience not in EXPERIENCES:
        raise InvalidInput("experience", f"experience must be one of {', '.join(EXPERIENCES)}")
    return data.model_copy(update={"user_name": user_name, "comment": text})


class CommentNotFound(LookupError):
    pass


class CommentStore:
    """Thread-safe, in-memory comment storage keyed by normalised domain."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_domain: dict[str, list[Comment]] = {}
        self._next_id = 1

    def add(self, data: CommentCreate, now: datetime | None = None) -> Comment:
        data = validate_submission(data)
        domain = normalize_domain(data.url)
        with self._lock:
            comment = Comment(
                id=self._next_id,
                domain=domain,
                user_name=data.user_name,
                rating=data.rating,
                experience=data.experience,
                comment=data.comment,
                was_scammed=data.was_scammed,
                helpful_count=0,
                timestamp=now or datetime.now(timezone.utc),
            )
            self._next_id += 1
            self._by_domain.setdefault(domain, []).append(comment)
        logger.info("comment %d added for %s", comment.id, domain)
        return comment.model_copy()

    def list_for(self, target: str) -> list[Comment]:
        domain = normalize_domain(target)
        with self._lock:
            comments = [c.model_copy() for c in self._by_domain.get(domain, [])]
        # newest first
        return sorted(comments, key=lambda c: (c.timestamp, c.id), reverse=True)

    def summary_for(self, target: str) -> CommentSummary:
        return summarize(self.list_for(target))

    def mark_helpful(self, target: str, comment_id: int) -> Comment:
        domain = normalize_domain(target)
        with self._lock:
            for c in self._by_domain.get(domain, []):
                if c.id == comment_id:
                    # in-place increment under the lock; concurrent votes all land
                    c.helpful_count += 1
                    return c.model_copy()
        raise CommentNotFound(f"comment {comment_id} not found for {domain}")
