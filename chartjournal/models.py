# chartjournal/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, JSON, ForeignKey, UniqueConstraint
from .database import Base


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    # Stored naive, in UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    name = Column(String, nullable=False)
    description = Column(String, default="")
    initial_capital = Column(Float, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=_utcnow)


class Trade(Base):
    __tablename__ = "trades"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, index=True)
    image = Column(Text, default="")  # data URL
    mode = Column(String, nullable=False)  # scalp, day, swing, position
    market_trend = Column(String, default="")
    key_pattern = Column(String, default="")
    indicator_analysis = Column(Text, default="")
    trade_bias = Column(String, default="")
    trade_setup = Column(JSON, nullable=False)  # tradeType, entryPrice, stopLoss, takeProfit, rrr
    rationale = Column(Text, default="")
    confidence_score = Column(Float, default=0)
    status = Column(String, default="pending")  # pending, profit, stop-loss
    outcome_amount = Column(Float, nullable=True)

    detected_timeframe = Column(String, nullable=True)
    leverage = Column(Float, nullable=True)
    profit_amount = Column(Float, nullable=True)


class AppSetting(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, default=_utcnow)
    gemini_api_key = Column(String, nullable=True)


class PortfolioAsset(Base):
    __tablename__ = "portfolio_assets"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    symbol = Column(String, nullable=False)
    name = Column(String, nullable=False)
    logo_url = Column(String, default="")
    category = Column(String, nullable=True)
    amount = Column(Float, default=0)
    avg_buy_price = Column(Float, default=0)
    current_price = Column(Float, default=0)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class CommunityAnalysis(Base):
    __tablename__ = "community_analyses"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    # No foreign key: the share is a snapshot and outlives the source trade
    analysis_id = Column(String, index=True, nullable=False)
    trade_snapshot = Column(JSON, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    likes_count = Column(Integer, default=0)
    dislikes_count = Column(Integer, default=0)
    comments_count = Column(Integer, default=0)
    is_featured = Column(Boolean, default=False)
    created_at = Column(DateTime, default=_utcnow, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (UniqueConstraint("user_id", "analysis_id", name="uq_community_user_analysis"),)


class CommunityComment(Base):
    __tablename__ = "community_comments"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    analysis_id = Column(String, ForeignKey("community_analyses.id"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    user_name = Column(String, default="")
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class CommunityLike(Base):
    __tablename__ = "community_likes"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    analysis_id = Column(String, ForeignKey("community_analyses.id"), index=True, nullable=False)
    like_type = Column(String, nullable=False)  # like, dislike
    created_at = Column(DateTime, default=_utcnow)

    __table_args__ = (UniqueConstraint("user_id", "analysis_id", name="uq_community_like"),)


class UserCommunityRead(Base):
    __tablename__ = "user_community_reads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False)
    last_read_at = Column(DateTime, nullable=False)
