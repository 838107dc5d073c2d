#!/usr/bin/env python3
"""
Sentiment Scoring Service
FastAPI application exposing the lexicon scorer, analysis history and alerts
"""

import os
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from config import get_config
from db.session import init_db
from services.history import HistoryService
from services.logging_utils import get_logger
from services.observability import metrics_router, record_request_metrics, request_timer, elapsed
from services.pipeline import AnalysisPipeline
from services.sentiment import SentimentService

# Initialize logger
logger = get_logger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Sentiment Scoring Service",
    description="Lexicon based sentiment scoring with history and negative feedback alerts",
    version="1.0.0"
)

# Global state
config = get_config()
sentiment_service = SentimentService()
history_service = HistoryService(max_items=config.HISTORY_MAX_ITEMS)
pipeline = AnalysisPipeline(sentiment_service, history_service)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(metrics_router)


# Pydantic models for API
class ScoreRequest(BaseModel):
    text: str


class AnalyzeRequest(BaseModel):
    text: str
    translate: Optional[bool] = None


@app.middleware("http")
async def observe_requests(request: Request, call_next):
    start = request_timer()
    response = await call_next(request)
    record_request_metrics(request, response.status_code, elapsed(start))
    return response


# Dependency for admin auth
async def verify_admin_token(x_admin_token: Optional[str] = Header(None)):
    if not x_admin_token or x_admin_token != get_config().ADMIN_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid admin token")
    return True


@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now(UTC).isoformat()}


@app.post("/api/score")
async def score_text(request: ScoreRequest) -> Dict[str, Any]:
    """Score text without storing it or running collaborators"""
    return sentiment_service.analyze_sentiment(request.text).to_dict()


@app.post("/api/analyze")
async def analyze_text(request: AnalyzeRequest) -> Dict[str, Any]:
    """Translate, score, store and alert on a piece of feedback"""
    try:
        outcome = await pipeline.process(request.text, translate=request.translate)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Analysis error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process the text")
    return outcome.to_dict()


@app.get("/api/history")
async def get_history(limit: Optional[int] = None) -> List[Dict[str, Any]]:
    return [result.to_dict() for result in history_service.list(limit)]


@app.get("/api/history/stats")
async def get_history_stats() -> Optional[Dict[str, Any]]:
    stats = history_service.stats()
    return stats.to_dict() if stats else None


@app.get("/api/history/export")
async def export_history():
    """Download the history as a CSV file"""
    filename = f"sentiment-analysis-{datetime.now(UTC).date().isoformat()}.csv"
    return Response(
        content=history_service.export_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.delete("/api/history/{result_id}")
async def delete_history_item(result_id: str):
    if not history_service.delete(result_id):
        raise HTTPException(status_code=404, detail="History item not found")
    return {"deleted": result_id}


@app.delete("/api/history")
async def clear_history(_: bool = Depends(verify_admin_token)):
    removed = history_service.clear()
    return {"cleared": removed}


@app.on_event("startup")
async def startup_event():
    """Initialize the history store"""
    logger.info("Starting sentiment scoring service...")
    init_db()


if __name__ == "__main__":
    port = int(os.getenv("PORT", config.PORT))
    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=port,
        reload=config.APP_ENV == "development"
    )
