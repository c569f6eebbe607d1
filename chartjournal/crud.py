# chartjournal/crud.py
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models, schemas, stats
from .auth import get_password_hash, verify_password
from .config import settings

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ==================== USER CRUD ====================

def get_user(db: Session, user_id: str):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()


def create_user(db: Session, user: schemas.UserCreate):
    if get_user_by_email(db, user.email):
        raise ValueError("A user with this email address already exists. Please try logging in.")

    db_user = models.User(
        email=user.email,
        hashed_password=get_password_hash(user.password),
        name=user.name,
        description="",
        initial_capital=settings.DEFAULT_INITIAL_CAPITAL,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)
    return db_user


def authenticate_user(db: Session, email: str, password: str):
    user = get_user_by_email(db, email)
    if not user or not user.is_active or not verify_password(password, user.hashed_password):
        return None
    return user


def update_user_profile(db: Session, user_id: str, name: str, description: str):
    user = get_user(db, user_id)
    if user is None:
        return None
    user.name = name
    user.description = description
    db.commit()
    db.refresh(user)
    return user


def update_initial_capital(db: Session, user_id: str, capital: float):
    user = get_user(db, user_id)
    if user is None:
        return None
    user.initial_capital = capital
    db.commit()
    db.refresh(user)
    return user


def withdraw_capital(db: Session, user_id: str, amount: float):
    """Reduce base capital; raises ValueError when it would go negative"""
    user = get_user(db, user_id)
    if user is None:
        return None
    user.initial_capital = stats.apply_withdrawal(user.initial_capital or 0, amount)
    db.commit()
    db.refresh(user)
    logger.info("User %s withdrew %.2f, capital now %.2f", user_id, amount, user.initial_capital)
    return user


def get_user_profile(db: Session, user: models.User) -> schemas.User:
    """Profile with the tier earned from the user's completed trades"""
    tier = stats.derive_tier(get_trades(db, user.id))["tier"]
    return schemas.User(
        id=user.id,
        email=user.email,
        name=user.name,
        description=user.description or "",
        initial_capital=user.initial_capital or 0,
        tier=tier,
    )


# ==================== TRADE CRUD ====================

def risk_reward_ratio(entry: float, stop: float, target: float) -> float:
    risk = abs(entry - stop)
    if risk == 0:
        return 0
    return round(abs(target - entry) / risk, 2)


def trade_to_schema(row: models.Trade) -> schemas.Trade:
    """Map a stored row to the wire shape; raises ValidationError if malformed"""
    setup = row.trade_setup if isinstance(row.trade_setup, dict) else {}
    return schemas.Trade(
        id=row.id,
        timestamp=row.created_at,
        image=row.image or "",
        mode=row.mode,
        market_trend=row.market_trend or "",
        key_pattern=row.key_pattern or "",
        indicator_analysis=row.indicator_analysis or "",
        trade_bias=row.trade_bias or "",
        trade_setup=setup,
        rationale=row.rationale or "",
        confidence_score=row.confidence_score or 0,
        status=row.status,
        outcome_amount=row.outcome_amount,
        detected_timeframe=row.detected_timeframe,
        leverage=row.leverage,
        profit_amount=row.profit_amount,
    )


def get_trades(db: Session, user_id: str) -> List[schemas.Trade]:
    """All of a user's trades, newest first; malformed rows are skipped"""
    rows = (
        db.query(models.Trade)
        .filter(models.Trade.user_id == user_id)
        .order_by(models.Trade.created_at.desc())
        .all()
    )

    trades = []
    for row in rows:
        try:
            trades.append(trade_to_schema(row))
        except ValidationError as e:
            logger.warning("Skipping malformed trade %s: %s", row.id, e.errors()[0].get("msg"))
    return trades


def get_trade(db: Session, user_id: str, trade_id: str):
    return (
        db.query(models.Trade)
        .filter(models.Trade.id == trade_id, models.Trade.user_id == user_id)
        .first()
    )


def create_trade(db: Session, user_id: str, trade: schemas.TradeCreate) -> schemas.Trade:
    setup = trade.trade_setup.model_dump()
    if not setup.get("rrr"):
        setup["rrr"] = risk_reward_ratio(setup["entry_price"], setup["stop_loss"], setup["take_profit"])

    db_trade = models.Trade(
        user_id=user_id,
        image=trade.image,
        mode=trade.mode,
        market_trend=trade.market_trend,
        key_pattern=trade.key_pattern,
        indicator_analysis=trade.indicator_analysis,
        trade_bias=trade.trade_bias,
        trade_setup=setup,
        rationale=trade.rationale,
        confidence_score=trade.confidence_score,
        status=trade.status,
        outcome_amount=trade.outcome_amount,
        detected_timeframe=trade.detected_timeframe,
        leverage=trade.leverage,
        profit_amount=trade.profit_amount,
        created_at=_utcnow(),
    )
    db.add(db_trade)
    db.commit()
    db.refresh(db_trade)
    return trade_to_schema(db_trade)


def update_trade_status(db: Session, user_id: str, trade_id: str, status: str, outcome_amount: float):
    """Record the outcome of a pending trade; a trade is closed only once"""
    db_trade = get_trade(db, user_id, trade_id)
    if db_trade is None:
        return None
    if db_trade.status != "pending":
        raise ValueError(f"Trade {trade_id} is already closed as {db_trade.status}")

    db_trade.status = status
    db_trade.outcome_amount = outcome_amount
    db.commit()
    db.refresh(db_trade)
    return trade_to_schema(db_trade)


def delete_trade(db: Session, user_id: str, trade_id: str) -> bool:
    db_trade = get_trade(db, user_id, trade_id)
    if db_trade is None:
        return False
    db.delete(db_trade)
    db.commit()
    return True


# ==================== SETTINGS ====================

def get_gemini_api_key(db: Session) -> str:
    row = db.query(models.AppSetting).filter(models.AppSetting.id == SETTINGS_ROW_ID).first()
    if row and row.gemini_api_key:
        return row.gemini_api_key
    return settings.GEMINI_API_KEY


def update_gemini_api_key(db: Session, api_key: str):
    row = db.query(models.AppSetting).filter(models.AppSetting.id == SETTINGS_ROW_ID).first()
    if row is None:
        row = models.AppSetting(id=SETTINGS_ROW_ID)
        db.add(row)
    row.gemini_api_key = api_key
    db.commit()
    return row


# ==================== PORTFOLIO ====================

def get_portfolio_assets(db: Session, user_id: str):
    return (
        db.query(models.PortfolioAsset)
        .filter(models.PortfolioAsset.user_id == user_id)
        .order_by(models.PortfolioAsset.symbol.asc())
        .all()
    )


def get_portfolio_asset(db: Session, user_id: str, asset_id: str):
    return (
        db.query(models.PortfolioAsset)
        .filter(models.PortfolioAsset.id == asset_id, models.PortfolioAsset.user_id == user_id)
        .first()
    )


def add_portfolio_asset(db: Session, user_id: str, asset: schemas.PortfolioAssetCreate):
    db_asset = models.PortfolioAsset(user_id=user_id, **asset.model_dump())
    db.add(db_asset)
    db.commit()
    db.refresh(db_asset)
    return db_asset


def update_portfolio_asset(db: Session, user_id: str, asset_id: str, updates: schemas.PortfolioAssetUpdate):
    db_asset = get_portfolio_asset(db, user_id, asset_id)
    if db_asset is None:
        return None
    for key, value in updates.model_dump(exclude_unset=True).items():
        setattr(db_asset, key, value)
    db.commit()
    db.refresh(db_asset)
    return db_asset


def delete_portfolio_asset(db: Session, user_id: str, asset_id: str) -> bool:
    db_asset = get_portfolio_asset(db, user_id, asset_id)
    if db_asset is None:
        return False
    db.delete(db_asset)
    db.commit()
    return True


def update_asset_prices(db: Session, user_id: str, prices: Dict[str, float]) -> int:
    """Set current prices by symbol; returns how many assets changed"""
    updated = 0
    for db_asset in get_portfolio_assets(db, user_id):
        price = prices.get(db_asset.symbol)
        if price is not None and price > 0:
            db_asset.current_price = price
            updated += 1
    db.commit()
    return updated


# ==================== COMMUNITY ====================

def share_analysis(db: Session, user_id: str, trade_id: str,
                   title: Optional[str] = None, description: Optional[str] = None):
    """Publish a snapshot of a trade; sharing it again only updates the text"""
    db_trade = get_trade(db, user_id, trade_id)
    if db_trade is None:
        return None

    existing = (
        db.query(models.CommunityAnalysis)
        .filter(models.CommunityAnalysis.user_id == user_id, models.CommunityAnalysis.analysis_id == trade_id)
        .first()
    )
    snapshot = trade_to_schema(db_trade)
    default_title = f"Shared Analysis - {snapshot.trade_setup.trade_type} {snapshot.timestamp.isoformat()}"

    if existing:
        existing.title = title or default_title
        existing.description = description or ""
        db.commit()
        db.refresh(existing)
        return existing

    shared = models.CommunityAnalysis(
        user_id=user_id,
        analysis_id=trade_id,
        trade_snapshot=snapshot.model_dump(mode="json", by_alias=True),
        title=title or default_title,
        description=description or "",
    )
    db.add(shared)
    db.commit()
    db.refresh(shared)
    logger.info("User %s shared trade %s as %s", user_id, trade_id, shared.id)
    return shared


def get_community_analysis(db: Session, analysis_id: str):
    return db.query(models.CommunityAnalysis).filter(models.CommunityAnalysis.id == analysis_id).first()


def get_user_like(db: Session, user_id: str, analysis_id: str) -> Optional[str]:
    like = (
        db.query(models.CommunityLike)
        .filter(models.CommunityLike.user_id == user_id, models.CommunityLike.analysis_id == analysis_id)
        .first()
    )
    return like.like_type if like else None


def community_entry(db: Session, user_id: str, shared: models.CommunityAnalysis, user_name: Optional[str]) -> dict:
    """Feed row for a share, as seen by ``user_id``"""
    return {
        "id": shared.id,
        "user_id": shared.user_id,
        "analysis_id": shared.analysis_id,
        "title": shared.title,
        "description": shared.description,
        "created_at": shared.created_at,
        "updated_at": shared.updated_at,
        "likes_count": shared.likes_count or 0,
        "dislikes_count": shared.dislikes_count or 0,
        "comments_count": shared.comments_count or 0,
        "is_featured": bool(shared.is_featured),
        "user_name": user_name,
        "user_like": get_user_like(db, user_id, shared.id),
        "trade_analysis": shared.trade_snapshot,
    }


def get_community_analyses(db: Session, user_id: str, limit: int = 20, offset: int = 0) -> List[dict]:
    rows = (
        db.query(models.CommunityAnalysis, models.User.name)
        .join(models.User, models.User.id == models.CommunityAnalysis.user_id)
        .order_by(models.CommunityAnalysis.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [community_entry(db, user_id, shared, user_name) for shared, user_name in rows]


def add_comment(db: Session, user: models.User, analysis_id: str, content: str):
    shared = get_community_analysis(db, analysis_id)
    if shared is None:
        return None

    comment = models.CommunityComment(
        user_id=user.id,
        analysis_id=analysis_id,
        content=content,
        user_name=user.name,
    )
    db.add(comment)
    shared.comments_count = (shared.comments_count or 0) + 1
    db.commit()
    db.refresh(comment)
    return comment


def get_comments(db: Session, analysis_id: str):
    return (
        db.query(models.CommunityComment)
        .filter(models.CommunityComment.analysis_id == analysis_id)
        .order_by(models.CommunityComment.created_at.asc())
        .all()
    )


def toggle_like(db: Session, user_id: str, analysis_id: str, like_type: str):
    """Same type again removes the reaction, the other type switches it.

    Returns the updated share, or None if it does not exist.
    """
    shared = get_community_analysis(db, analysis_id)
    if shared is None:
        return None

    existing = (
        db.query(models.CommunityLike)
        .filter(models.CommunityLike.user_id == user_id, models.CommunityLike.analysis_id == analysis_id)
        .first()
    )
    if existing is None:
        db.add(models.CommunityLike(user_id=user_id, analysis_id=analysis_id, like_type=like_type))
    elif existing.like_type == like_type:
        db.delete(existing)
    else:
        existing.like_type = like_type
    db.flush()

    counts = dict(
        db.query(models.CommunityLike.like_type, func.count(models.CommunityLike.id))
        .filter(models.CommunityLike.analysis_id == analysis_id)
        .group_by(models.CommunityLike.like_type)
        .all()
    )
    shared.likes_count = counts.get("like", 0)
    shared.dislikes_count = counts.get("dislike", 0)
    db.commit()
    db.refresh(shared)
    return shared


def mark_community_read(db: Session, user_id: str):
    read = db.query(models.UserCommunityRead).filter(models.UserCommunityRead.user_id == user_id).first()
    if read is None:
        read = models.UserCommunityRead(user_id=user_id, last_read_at=_utcnow())
        db.add(read)
    else:
        read.last_read_at = _utcnow()
    db.commit()
    return read


def get_community_stats(db: Session, user_id: str) -> Dict[str, int]:
    unread = 0
    read = db.query(models.UserCommunityRead).filter(models.UserCommunityRead.user_id == user_id).first()
    if read is not None:
        unread = (
            db.query(models.CommunityAnalysis)
            .filter(models.CommunityAnalysis.created_at > read.last_read_at)
            .count()
        )

    return {
        "total_analyses": db.query(models.CommunityAnalysis).count(),
        "total_comments": db.query(models.CommunityComment).count(),
        "total_likes": db.query(models.CommunityLike).count(),
        "unread_count": unread,
    }
