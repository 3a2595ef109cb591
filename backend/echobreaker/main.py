"""
Main FastAPI application and routing layer.
"""
from __future__ import annotations

import asyncio
import logging
import time
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from echobreaker.config import CORS_ALLOW_ORIGINS, DEFAULT_RECOMMENDATION_LIMIT, LOG_FORMAT, LOG_LEVEL, settings
from echobreaker.core.overlay import overlay_stances
from echobreaker.errors import RecommendationNotFound
from echobreaker.schemas import (
    AnalysisOut,
    AnalysisRunResponse,
    CrawlPayload,
    CrawlResponse,
    DashboardStats,
    RecommendationOut,
    SkippedOut,
    StanceProbabilitiesOut,
    StancesRequest,
    StancesResponse,
    VideoStanceOut,
)
from echobreaker.services.classifier import ZeroShotStanceClassifier, build_classifier
from echobreaker.services.pipeline import DiversityService
from echobreaker.storage import MemoryStorage
from echobreaker.utils import now_utc

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger("uvicorn")


@lru_cache(maxsize=1)
def get_service() -> DiversityService:
    """Process-wide service backed by in-memory storage."""
    return DiversityService(storage=MemoryStorage(), classifier=build_classifier(settings))


# Initialize FastAPI app
app = FastAPI(
    title="EchoBreaker Diversity API",
    version="0.1.0",
    description="API for measuring the viewpoint diversity of a video-recommendation diet"
)


@app.on_event("startup")
async def warm_startup():
    """Warm up the local stance model on startup when it is the configured backend."""
    classifier = get_service().classifier
    if not isinstance(classifier, ZeroShotStanceClassifier):
        return

    async def load_model():
        start_time = time.perf_counter()
        try:
            from echobreaker.services.classifier import _load_zero_shot_pipeline
            # Load model in thread to avoid blocking startup
            await asyncio.to_thread(_load_zero_shot_pipeline, classifier.model_name)
            logger.info("Stance model loaded in %.1fs", time.perf_counter() - start_time)
        except Exception as e:
            logger.warning("Model warm-up skipped: %s", e)

    # Start model loading in background
    asyncio.create_task(load_model())


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "as_of": now_utc().isoformat(),
        "service": "echobreaker-api"
    }


@app.post("/api/crawl", response_model=CrawlResponse)
async def receive_crawl(payload: CrawlPayload, service: DiversityService = Depends(get_service)):
    """
    Classify and store videos collected by the browser extension.

    Malformed or failed classifications are reported per video; they never
    fail the whole sync.
    """
    if service.is_syncing:
        raise HTTPException(status_code=409, detail="A sync is already running")

    videos = payload.video_records()
    candidates = payload.candidate_records()
    logger.info("Received crawl: %d videos, %d candidates", len(videos), len(candidates))

    batch, candidate_batch = await service.sync(videos, payload.subscription_records(), candidates)

    return CrawlResponse(
        received=batch.received,
        classified=len(batch.classified),
        candidates=len(candidate_batch.classified),
        subscriptions=len(batch.subscriptions),
        skipped=[SkippedOut.from_skipped(item) for item in batch.skipped + candidate_batch.skipped],
        failed=[SkippedOut.from_skipped(item) for item in batch.failed + candidate_batch.failed],
        cancelled=len(batch.cancelled) + len(candidate_batch.cancelled),
        partial=batch.partial or candidate_batch.partial,
    )


@app.post("/api/crawl/cancel")
async def cancel_crawl(service: DiversityService = Depends(get_service)):
    """Cancel the running sync, keeping whatever was already classified."""
    return {"cancelled": service.cancel()}


@app.post("/api/analysis/run", response_model=AnalysisRunResponse)
async def run_analysis(
    limit: int = Query(DEFAULT_RECOMMENDATION_LIMIT, ge=0, le=50, description="Maximum number of recommendations"),
    service: DiversityService = Depends(get_service),
):
    """Analyze all stored videos and generate counter-recommendations."""
    if not service.storage.load_active_classified_videos():
        raise HTTPException(status_code=400, detail="No classified videos to analyze. Please collect some data first.")

    result, recommendations = service.run_analysis(limit)
    return AnalysisRunResponse(
        analysis=AnalysisOut.from_result(result),
        recommendations=[RecommendationOut.from_recommendation(rec) for rec in recommendations],
    )


@app.get("/api/analysis/latest", response_model=Optional[AnalysisOut])
async def latest_analysis(service: DiversityService = Depends(get_service)):
    """Most recent analysis, or null before the first run."""
    result = service.storage.latest_analysis()
    return AnalysisOut.from_result(result) if result else None


@app.get("/api/analysis/history", response_model=List[AnalysisOut])
async def analysis_history(service: DiversityService = Depends(get_service)):
    """All stored analyses, oldest first, for trend charts."""
    return [AnalysisOut.from_result(result) for result in service.storage.analysis_history()]


@app.get("/api/recommendations", response_model=List[RecommendationOut])
async def list_recommendations(service: DiversityService = Depends(get_service)):
    return [RecommendationOut.from_recommendation(rec) for rec in service.storage.list_recommendations()]


@app.patch("/api/recommendations/{recommendation_id}/watched", response_model=RecommendationOut)
async def mark_watched(recommendation_id: str, service: DiversityService = Depends(get_service)):
    try:
        rec = service.storage.mark_recommendation_watched(recommendation_id)
    except RecommendationNotFound:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    return RecommendationOut.from_recommendation(rec)


@app.post("/api/videos/stances", response_model=StancesResponse)
async def video_stances(request: StancesRequest, service: DiversityService = Depends(get_service)):
    """Echo-chamber overlay for the videos currently on the user's screen."""
    overlay = overlay_stances(service.storage.load_active_classified_videos(), request.video_ids)
    return StancesResponse(
        stances={
            video_id: VideoStanceOut(
                stance=stance.stance,
                stance_probabilities=StanceProbabilitiesOut.from_distribution(stance.distribution),
                is_echo_chamber=stance.is_echo_chamber,
                is_diverse=stance.is_diverse,
            )
            for video_id, stance in overlay.stances.items()
        },
        dominant_stance=overlay.dominant_stance,
        total_analyzed=overlay.total_analyzed,
        total_political=overlay.total_political,
    )


@app.get("/api/stats", response_model=DashboardStats)
async def dashboard_stats(service: DiversityService = Depends(get_service)):
    return service.storage.stats()


@app.get("/api/data/export")
async def export_data(service: DiversityService = Depends(get_service)):
    return service.storage.export_all()


@app.delete("/api/data/all")
async def delete_data(service: DiversityService = Depends(get_service)):
    service.storage.delete_all()
    return {"success": True}


if __name__ == "__main__":
    # For development
    import uvicorn
    uvicorn.run("echobreaker.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
