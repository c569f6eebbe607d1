# chartjournal/schemas.py

from datetime import datetime
from typing import Optional, List, Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .config import settings

TradingMode = Literal["scalp", "day", "swing", "position"]
DashboardMode = Literal["all", "scalp", "day", "swing", "position"]
TradeStatus = Literal["pending", "profit", "stop-loss"]
Timeframe = Literal["daily", "weekly", "monthly"]


class CamelModel(BaseModel):
    """Wire models are camelCase; snake_case names are accepted on input too."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# Trade schemas
class TradeSetup(CamelModel):
    trade_type: Literal["Long", "Short"]
    entry_price: float = Field(ge=0, allow_inf_nan=False)
    stop_loss: float = Field(ge=0, allow_inf_nan=False)
    take_profit: float = Field(ge=0, allow_inf_nan=False)
    rrr: float = Field(0, ge=0, allow_inf_nan=False)


class TradeBase(CamelModel):
    mode: TradingMode
    market_trend: str = ""
    key_pattern: str = ""
    indicator_analysis: str = ""
    trade_bias: str = ""
    trade_setup: TradeSetup
    rationale: str = ""
    confidence_score: float = Field(0, ge=0, le=100)
    detected_timeframe: Optional[str] = None
    leverage: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    profit_amount: Optional[float] = Field(None, allow_inf_nan=False)


def _check_outcome(status: str, outcome_amount: Optional[float]):
    if status == "pending" and outcome_amount is not None:
        raise ValueError("a pending trade cannot carry an outcome amount")
    if status != "pending" and outcome_amount is None:
        raise ValueError(f"a {status} trade requires an outcome amount")


class TradeCreate(TradeBase):
    image: str = ""
    status: TradeStatus = "pending"
    outcome_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def outcome_matches_status(self):
        _check_outcome(self.status, self.outcome_amount)
        return self


class Trade(TradeBase):
    id: str
    timestamp: datetime
    image: str = ""
    status: TradeStatus
    outcome_amount: Optional[float] = None

    @model_validator(mode="after")
    def outcome_matches_status(self):
        _check_outcome(self.status, self.outcome_amount)
        return self


class TradeStatusUpdate(CamelModel):
    status: Literal["profit", "stop-loss"]
    outcome_amount: float = Field(ge=0, allow_inf_nan=False)


class TradeCalculation(CamelModel):
    account_balance: float = Field(gt=0, allow_inf_nan=False)
    risk_per_trade: float = Field(1.0, ge=0, le=100, allow_inf_nan=False)
    stop_loss_distance: float = Field(gt=0, allow_inf_nan=False)
    leverage: float = Field(10.0, gt=0, allow_inf_nan=False)
    risk_reward_ratio: float = Field(2.0, gt=0, allow_inf_nan=False)
    entry_price: float = Field(gt=0, allow_inf_nan=False)
    trade_type: Literal["Long", "Short"] = "Long"
    exit_price: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


class TradeCalculationResult(CamelModel):
    trade_type: Literal["Long", "Short"]
    risk_amount: float
    position_size: float
    position_value: float
    margin_required: float
    take_profit_distance: float
    take_profit_price: float
    potential_profit: float
    potential_loss: float
    liquidation_price: float
    pnl: Optional[float] = None
    initial_margin: Optional[float] = None


# User schemas
class UserCreate(CamelModel):
    email: EmailStr
    password: str
    name: str

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, value):
        return value.lower()

    @field_validator("password")
    @classmethod
    def long_enough(cls, value):
        if len(value) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")
        return value

    @field_validator("name")
    @classmethod
    def valid_name(cls, value):
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters")
        return value


class UserLogin(CamelModel):
    email: str
    password: str


class User(CamelModel):
    id: str
    email: str
    name: str
    description: Optional[str] = ""
    initial_capital: float
    tier: Optional[str] = None


class ProfileUpdate(CamelModel):
    name: str
    description: str = Field("", max_length=200)

    @field_validator("name")
    @classmethod
    def valid_name(cls, value):
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters")
        return value


class CapitalUpdate(CamelModel):
    capital: float = Field(ge=0, allow_inf_nan=False)


class WithdrawalRequest(CamelModel):
    amount: float = Field(gt=0, allow_inf_nan=False)


class GeminiKeyUpdate(CamelModel):
    api_key: str

    @field_validator("api_key")
    @classmethod
    def not_blank(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("API Key cannot be empty")
        return value


# Token schemas
class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"


# Stats schemas
class ModeStats(CamelModel):
    mode: DashboardMode
    total_trades: int
    completed: int
    wins: int
    losses: int
    pending: int
    win_rate: int
    net_pl: float = Field(alias="netPL")
    initial_capital: Optional[float] = None
    current_equity: Optional[float] = None


class AdvancedMetrics(CamelModel):
    total_trades: int
    win_rate: int
    total_wins: int
    total_losses: int
    average_win: float
    average_loss: float
    profit_factor: float
    max_drawdown: float
    best_trade: float
    worst_trade: float
    longest_win_streak: int
    longest_loss_streak: int


class PerformanceSeries(CamelModel):
    timeframe: Timeframe
    labels: List[str]
    profit: List[int]
    loss: List[int]
    pending: List[int]
    cumulative_pl: List[float]


class TierProfile(CamelModel):
    tier: str
    description: str
    win_rate: int
    total_trades: int


class TokenUsage(CamelModel):
    prompt: int = 0
    completion: int = 0
    total: int = 0


class AIReview(CamelModel):
    analysis_text: str
    usage: TokenUsage


# Portfolio schemas
class PortfolioAssetCreate(CamelModel):
    symbol: str = Field(min_length=1)
    name: str = Field(min_length=1)
    logo_url: str = ""
    category: Optional[str] = None
    amount: float = Field(ge=0, allow_inf_nan=False)
    avg_buy_price: float = Field(ge=0, allow_inf_nan=False)
    current_price: float = Field(ge=0, allow_inf_nan=False)

    @field_validator("symbol")
    @classmethod
    def upper_symbol(cls, value):
        return value.strip().upper()


class PortfolioAssetUpdate(CamelModel):
    amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    avg_buy_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    current_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    logo_url: Optional[str] = None
    category: Optional[str] = None


class PortfolioAssetValue(CamelModel):
    id: Optional[str] = None
    symbol: str
    name: str
    logo_url: Optional[str] = ""
    category: Optional[str] = None
    amount: float
    avg_buy_price: float
    current_price: float
    value: float
    total_pl: float


class PortfolioData(CamelModel):
    assets: List[PortfolioAssetValue]
    total_value: float
    total_pl: float
    pl_24h: float
    pl_24h_percent: float


class AdviceRequest(CamelModel):
    question: str = Field(min_length=1, max_length=2000)


# Community schemas
class ShareRequest(CamelModel):
    analysis_id: str
    title: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)


class CommunityAnalysis(CamelModel):
    id: str
    user_id: str
    analysis_id: str
    title: str
    description: Optional[str] = ""
    created_at: datetime
    updated_at: Optional[datetime] = None
    likes_count: int = 0
    dislikes_count: int = 0
    comments_count: int = 0
    is_featured: bool = False
    user_name: Optional[str] = None
    user_like: Optional[Literal["like", "dislike"]] = None
    trade_analysis: Optional[dict] = None


class CommentCreate(CamelModel):
    content: str = Field(min_length=1, max_length=2000)


class CommunityComment(CamelModel):
    id: str
    user_id: str
    analysis_id: str
    content: str
    user_name: Optional[str] = ""
    created_at: datetime


class LikeRequest(CamelModel):
    like_type: Literal["like", "dislike"]


class CommunityStats(CamelModel):
    total_analyses: int
    total_comments: int
    total_likes: int
    unread_count: int


# Calendar schemas
class EconomicEvent(CamelModel):
    id: int
    time: str
    currency: str
    importance: Literal[1, 2, 3]
    event: str
    actual: Optional[str] = None
    forecast: Optional[str] = None
    previous: Optional[str] = None
    better_than_forecast: Optional[bool] = None


class ChartAnalysisResult(CamelModel):
    trade: Trade
    usage: TokenUsage
