# chartjournal/routers/stats.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chartjournal.database import get_db
from chartjournal import crud, schemas, models, stats
from chartjournal.ai_service import GeminiAnalyzer, get_analyzer
from chartjournal.auth import get_current_user
from chartjournal.config import settings

router = APIRouter(prefix="/api/stats", tags=["stats"])

NO_TRADES_REVIEW = "No trading data available yet. Analyze and close a few trades to get a performance review."


@router.get("", response_model=schemas.ModeStats)
def read_stats(
    mode: schemas.DashboardMode = "all",
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Headline numbers for one dashboard mode"""
    trades = crud.get_trades(db, user.id)
    return stats.compute_mode_stats(trades, mode, user.initial_capital or 0)


@router.get("/summary", response_model=List[schemas.ModeStats])
def read_summary(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Stats for "all" followed by each trading mode"""
    return stats.compute_stats_summary(crud.get_trades(db, user.id), user.initial_capital or 0)


@router.get("/advanced", response_model=schemas.AdvancedMetrics)
def read_advanced(
    mode: schemas.DashboardMode = "all",
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return stats.compute_advanced_metrics(crud.get_trades(db, user.id), mode)


@router.get("/series", response_model=schemas.PerformanceSeries)
def read_series(
    timeframe: schemas.Timeframe = "daily",
    mode: schemas.DashboardMode = "all",
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Per-bucket outcome counts and cumulative P/L for charting"""
    trades = stats.filter_by_mode(crud.get_trades(db, user.id), mode)
    return stats.build_performance_series(trades, timeframe, settings.DISPLAY_TIMEZONE)


@router.get("/tier", response_model=schemas.TierProfile)
def read_tier(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    return stats.derive_tier(crud.get_trades(db, user.id))


@router.post("/ai-review", response_model=schemas.AIReview)
def ai_review(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    analyzer: GeminiAnalyzer = Depends(get_analyzer),
):
    """Short coaching note on the user's per-mode performance"""
    trades = crud.get_trades(db, user.id)
    if not trades:
        return schemas.AIReview(analysis_text=NO_TRADES_REVIEW, usage=schemas.TokenUsage())

    text, usage = analyzer.analyze_performance(stats.compute_stats_summary(trades, user.initial_capital or 0))
    return schemas.AIReview(analysis_text=text, usage=usage)
