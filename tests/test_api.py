"""
Route tests using FastAPI TestClient: analysis, raw scoring, gating and comments.
"""

from __future__ import annotations

NEW_SITE_SIGNALS = {
    "domainAge": {"kind": "domain-age", "numericValue": 40},
    "ssl": {"kind": "ssl-status", "flags": ["absent"]},
}


def test_healthz(client):
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json() == {"ok": True, "gating_mode": "server"}


def test_score_hides_details_from_anonymous_callers(client):
    res = client.post("/api/score", json={"target": "example.com", "signals": NEW_SITE_SIGNALS})
    assert res.status_code == 200
    body = res.json()
    assert body["score"] == 42
    assert body["verdict"] == "Caution"
    for gated in ("findings", "redFlags", "aiAnalysis", "riskLevel"):
        assert gated not in body


def test_score_shows_details_with_token(client, auth_headers):
    res = client.post("/api/score", json={"target": "example.com", "signals": NEW_SITE_SIGNALS}, headers=auth_headers)
    body = res.json()
    assert body["riskLevel"] == "Medium Risk"
    assert body["findings"][0] == {"type": "warning", "text": "Very new domain (40 days old, under 6 months)."}
    assert {"type": "warning", "category": "security", "text": "No SSL certificate; traffic to this site is not encrypted."} in body["redFlags"]
    assert body["totalRedFlags"] == 2


def test_wrong_token_is_anonymous(client):
    res = client.post(
        "/api/score",
        json={"target": "example.com", "signals": NEW_SITE_SIGNALS},
        headers={"Authorization": "Bearer nope"},
    )
    assert "findings" not in res.json()


def test_score_rejects_empty_signals(client):
    res = client.post("/api/score", json={"target": "example.com", "signals": {}})
    assert res.status_code == 422
    assert res.json()["field"] == "signals"


def test_client_mode_sends_locked_details(client_mode_client):
    res = client_mode_client.post("/api/score", json={"target": "example.com", "signals": NEW_SITE_SIGNALS})
    body = res.json()
    assert "findings" in body
    assert "findings" in body["locked"]


def test_analyze_website_ponzi_pattern(client, auth_headers):
    res = client.post(
        "/api/analyze",
        json={
            "url": "https://www.scamcoin-invest.xyz/",
            "content": "Guaranteed returns! Earn 3% daily profit. Refer friends for a referral bonus.",
            "signals": {"domain-age": {"kind": "domain-age", "numericValue": 20}},
        },
        headers=auth_headers,
    )
    assert res.status_code == 200
    body = res.json()
    result = body["result"]
    assert result["target"] == "scamcoin-invest.xyz"
    assert result["score"] == 0
    assert result["verdict"] == "Scam"
    assert result["criticalFlags"] >= 1
    assert result["comments"]["total_comments"] == 0
    assert "total" in body["timings_ms"]


def test_supplied_signals_override_collected_ones(client, auth_headers):
    res = client.post(
        "/api/analyze",
        json={
            "url": "http://example.com",
            "signals": {
                "ssl-status": {"kind": "ssl-status", "flags": ["valid"]},
                "domain-age": {"kind": "domain-age", "numericValue": 3000},
            },
        },
        headers=auth_headers,
    )
    result = res.json()["result"]
    texts = [f["text"] for f in result["findings"]]
    assert "Connection is encrypted (valid SSL certificate)." in texts
    assert not any(t.startswith("No SSL certificate") for t in texts)
    assert result["score"] == 78
    assert result["verdict"] == "Legit"


def test_analyze_bare_domain_returns_baseline_result(client):
    res = client.post("/api/analyze", json={"url": "scam-site.example"})
    assert res.status_code == 200
    result = res.json()["result"]
    assert result["score"] == 60
    assert result["verdict"] == "Caution"


def test_analyze_rejects_bad_url(client):
    res = client.post("/api/analyze", json={"url": "not a url"})
    assert res.status_code == 422
    assert res.json()["field"] == "url"


def test_analyze_job_scam(client, auth_headers):
    res = client.post(
        "/api/analyze-job",
        json={
            "job_url": "https://bit.ly/x",
            "job_description": "No experience needed! Pay a $50 registration fee and interview via Telegram.",
            "company_name": "",
            "salary": "$95/hour",
            "recruiter_email": "hr.jobs@gmail.com",
        },
        headers=auth_headers,
    )
    assert res.status_code == 200
    result = res.json()["result"]
    assert result["targetType"] == "job"
    assert result["target"] == "https://bit.ly/x"
    assert result["score"] == 0
    assert result["verdict"] == "Likely Scam"
    assert result["riskLevel"] == "High Risk"
    categories = {rf["category"] for rf in result["redFlags"]}
    assert {"identity", "platform", "payment", "communication"} <= categories
    assert "comments" not in result


def test_analyze_job_requires_url_or_description(client, auth_headers):
    res = client.post("/api/analyze-job", json={"company_name": "Acme"}, headers=auth_headers)
    assert res.status_code == 422
    assert res.json()["field"] == "job_url"


def test_analyze_job_anonymous_sees_only_headline(client):
    res = client.post(
        "/api/analyze-job",
        json={"job_url": "https://www.linkedin.com/jobs/view/1", "recruiter_email": "talent@acme.com", "company_name": "Acme"},
    )
    result = res.json()["result"]
    assert set(result) == {"target", "targetType", "score", "verdict", "locked"}


def test_comment_flow(client):
    first = client.post("/api/comments", json={
        "url": "https://www.example.com",
        "user_name": "Ann",
        "rating": 4,
        "experience": "positive",
        "comment": "Fine",
        "was_scammed": False,
    })
    assert first.status_code == 201
    client.post("/api/comments", json={
        "url": "example.com",
        "user_name": "Bo",
        "rating": 2,
        "experience": "negative",
        "comment": "Never got my refund",
        "was_scammed": True,
    })

    listing = client.get("/api/comments/example.com").json()
    assert listing["domain"] == "example.com"
    assert listing["total_comments"] == 2
    assert listing["average_rating"] == 3.0
    assert listing["scam_reports"] == 1
    assert listing["experience_breakdown"] == {"positive": 1, "neutral": 0, "negative": 1}

    comment_id = first.json()["id"]
    res = client.post(f"/api/comments/{comment_id}/helpful", params={"domain": "example.com"})
    assert res.json() == {"id": comment_id, "helpful_count": 1}
    res = client.post(f"/api/comments/{comment_id}/helpful", params={"domain": "example.com"})
    assert res.json()["helpful_count"] == 2


def test_comment_summary_reaches_signed_in_analysis(client, auth_headers):
    client.post("/api/comments", json={
        "url": "example.com", "user_name": "Ann", "rating": 1, "experience": "negative",
        "comment": "Scammed", "was_scammed": True,
    })
    res = client.post(
        "/api/analyze",
        json={"url": "https://example.com", "signals": NEW_SITE_SIGNALS},
        headers=auth_headers,
    )
    comments = res.json()["result"]["comments"]
    assert comments["total_comments"] == 1
    assert comments["scam_reports"] == 1


def test_comment_rating_out_of_range(client):
    res = client.post("/api/comments", json={
        "url": "example.com", "user_name": "Ann", "rating": 7, "experience": "positive", "comment": "x",
    })
    assert res.status_code == 422
    assert res.json()["field"] == "rating"
    assert client.get("/api/comments/example.com").json()["total_comments"] == 0


def test_helpful_for_unknown_comment(client):
    res = client.post("/api/comments/999/helpful", params={"domain": "example.com"})
    assert res.status_code == 404


def test_score_rejects_out_of_range_number(client):
    res = client.post(
        "/api/score",
        content='{"target": "example.com", "signals": {"age": {"kind": "domain-age", "numericValue": 1e400}}}',
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 422
    assert res.json()["field"] == "signals.age"


def test_score_with_only_a_critical_signal(client):
    res = client.post("/api/score", json={
        "target": "example.com",
        "signals": {"blocklist": {"kind": "blocklist", "severity": "critical"}},
    })
    assert res.status_code == 200
    assert res.json()["score"] == 0


def test_analyze_rejects_malformed_bracket_url(client):
    res = client.post("/api/analyze", json={"url": "http://[oops/"})
    assert res.status_code == 422
    assert res.json()["field"] == "url"


def test_comments_for_malformed_domain(client):
    res = client.get("/api/comments/%5Boops")
    assert res.status_code == 422
    assert res.json()["field"] == "url"


def test_comment_listing_summarizes_the_listed_comments(app, client, monkeypatch):
    client.post("/api/comments", json={
        "url": "example.com", "user_name": "Ann", "rating": 2, "experience": "negative", "comment": "Slow",
    })

    def stale_summary(target):
        raise AssertionError("summary must come from the listed comments")

    monkeypatch.setattr(app.state.comments, "summary_for", stale_summary)
    listing = client.get("/api/comments/example.com").json()
    assert listing["total_comments"] == len(listing["comments"]) == 1
    assert listing["average_rating"] == 2.0


def test_breakdowns_are_gated(client, auth_headers):
    body = {
        "job_url": "https://bit.ly/x",
        "recruiter_email": "hr.jobs@gmail.com",
        "salary": "$95/hour",
    }
    anonymous = client.post("/api/analyze-job", json=body).json()["result"]
    assert "emailAnalysis" not in anonymous
    assert "scamProbability" not in anonymous

    signed_in = client.post("/api/analyze-job", json=body, headers=auth_headers).json()["result"]
    assert signed_in["emailAnalysis"]["provider"] == "Free email provider"
    assert signed_in["salaryAnalysis"]["yearlyEquivalent"] == "$197,600"
    assert signed_in["platformAnalysis"]["platform"] == "URL shortener"
    assert signed_in["scamProbability"].startswith("HIGH")
