from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .analyzer import Analysis, analyze_job, analyze_website
from .comments import CommentNotFound, CommentStore, normalize_domain, summarize
from .disclosure import DisclosurePolicy
from .errors import InvalidInput
from .models import (
    AnalyzeRequest,
    AnalyzeResponse,
    Comment,
    CommentCreate,
    CommentsResponse,
    DisclosedResult,
    HelpfulResponse,
    JobAnalyzeRequest,
    ScoreRequest,
    ViewerState,
)
from .scoring import ScoreAggregator
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

# Load environment variables from the repo root .env (so GEMINI_API_KEY works in local dev)
_HERE = Path(__file__).resolve()
load_dotenv(_HERE.parents[1] / ".env", override=False)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_viewer(request: Request, authorization: str | None = Header(None)) -> ViewerState:
    settings: Settings = request.app.state.settings
    token = _bearer_token(authorization)
    return ViewerState(authenticated=bool(token and token in settings.api_tokens))


def _respond(request: Request, analysis: Analysis, viewer: ViewerState) -> AnalyzeResponse:
    policy: DisclosurePolicy = request.app.state.policy
    store: CommentStore = request.app.state.comments
    summary = None
    if analysis.result.target_type == "website":
        summary = store.summary_for(analysis.result.target)
    return AnalyzeResponse(
        result=policy.apply(analysis.result, viewer, comments=summary),
        analyzed_at=analysis.analyzed_at,
        timings_ms=analysis.timings_ms,
        warnings=analysis.warnings,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="Platform Analyzer", version="0.1.0")
    app.state.settings = settings
    app.state.policy = DisclosurePolicy(settings.gating_mode)
    app.state.aggregator = ScoreAggregator()
    app.state.comments = CommentStore()

    # For local dev this allows the Vite and CRA dev servers.
    # In production, set PLATFORM_ANALYZER_CORS_ORIGINS to your deployed frontend origins.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field})

    @app.get("/healthz")
    def healthz():
        return {"ok": True, "gating_mode": settings.gating_mode}

    @app.post("/api/analyze", response_model=AnalyzeResponse, response_model_exclude_none=True)
    def analyze_endpoint(req: AnalyzeRequest, request: Request, viewer: ViewerState = Depends(get_viewer)):
        analysis = analyze_website(req, settings, request.app.state.aggregator)
        return _respond(request, analysis, viewer)

    @app.post("/api/analyze-job", response_model=AnalyzeResponse, response_model_exclude_none=True)
    def analyze_job_endpoint(req: JobAnalyzeRequest, request: Request, viewer: ViewerState = Depends(get_viewer)):
        analysis = analyze_job(req, settings, request.app.state.aggregator)
        return _respond(request, analysis, viewer)

    @app.post("/api/score", response_model=DisclosedResult, response_model_exclude_none=True)
    def score_endpoint(req: ScoreRequest, request: Request, viewer: ViewerState = Depends(get_viewer)):
        result = request.app.state.aggregator.aggregate(req.target, req.signals, target_type=req.target_type)
        return request.app.state.policy.apply(result, viewer)

    @app.get("/api/comments/{domain}", response_model=CommentsResponse)
    def list_comments(domain: str, request: Request):
        store: CommentStore = request.app.state.comments
        comments = store.list_for(domain)
        summary = summarize(comments)
        return CommentsResponse(domain=normalize_domain(domain), comments=comments, **summary.model_dump())

    @app.post("/api/comments", response_model=Comment, status_code=201)
    def submit_comment(data: CommentCreate, request: Request):
        return request.app.state.comments.add(data)

    @app.post("/api/comments/{comment_id}/helpful", response_model=HelpfulResponse)
    def mark_helpful(comment_id: int, domain: str, request: Request):
        try:
            comment = request.app.state.comments.mark_helpful(domain, comment_id)
        except CommentNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        return HelpfulResponse(id=comment.id, helpful_count=comment.helpful_count)

    return app


app = create_app()
