"""
AI commentary using Google Gemini.
Turns an already computed analysis into a short plain-language explanation.
The score is never changed by this module.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from .models import AnalysisResult

logger = logging.getLogger(__name__)

_MAX_SUMMARY_CHARS = 1200


def _normalize_ai_output(raw: Any) -> str | None:
    """Pull a clean summary out of whatever Gemini returned."""
    if isinstance(raw, str):
        text = raw
    elif isinstance(raw, dict):
        text = str(raw.get("summary") or raw.get("analysis") or "")
    else:
        return None
    text = " ".join(text.split())
    if not text:
        return None
    return text[:_MAX_SUMMARY_CHARS]


def _build_prompt(result: AnalysisResult, context: dict[str, Any]) -> str:
    findings = "\n".join(f"- [{f.severity}] {f.text}" for f in result.findings) or "- none"
    subject = "job posting" if result.target_type == "job" else "website"
    extra = "\n".join(f"{k}: {v}" for k, v in context.items() if v) or "none"
    return f"""You are a consumer-protection analyst explaining an automated scam check to a non-technical reader.

The {subject} below has already been scored by deterministic heuristics. Do NOT change the score or verdict;
explain them in 2-4 sentences, mention the most important red flags first, and end with one concrete next step.

Target: {result.target}
Score: {result.score}/100
Verdict: {result.verdict}
Risk level: {result.risk_level}

Findings:
{findings}

Additional context:
{extra}

Respond with ONLY valid JSON (no markdown, no code blocks):
{{"summary": "<your explanation>"}}"""


def _call_gemini(prompt: str, api_key: str, model: str) -> Any | None:
    """Call Gemini via the official google-genai SDK and parse the JSON response."""
    try:
        from google import genai
        from google.genai import types
    except ImportError as e:
        logger.warning("google-genai not available: %s", e)
        return None

    try:
        client = genai.Client(api_key=api_key)
        contents = [
            types.Content(
                role="user",
                parts=[types.Part.from_text(text=prompt)],
            )
        ]
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            temperature=0.2,
            max_output_tokens=1024,
        )
        resp = client.models.generate_content(model=model, contents=contents, config=config)

        text = (getattr(resp, "text", None) or "").strip()
        if not text:
            return None

        # The SDK may still return fenced JSON sometimes.
        if text.startswith("```json"):
            text = text[7:]
        elif text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    except Exception as e:
        logger.warning("Gemini call failed: %s", e)
        return None


def explain_result(
    result: AnalysisResult,
    *,
    api_key: str | None,
    model: str,
    context: dict[str, Any] | None = None,
) -> str | None:
    """
    Ask Gemini for free-text commentary on ``result``.
    Returns None when no API key is configured or the call fails.
    """
    if not api_key:
        return None
    prompt = _build_prompt(result, context or {})
    return _normalize_ai_output(_call_gemini(prompt, api_key, model))
