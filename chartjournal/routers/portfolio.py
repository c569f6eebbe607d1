# chartjournal/routers/portfolio.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from chartjournal.database import get_db
from chartjournal import crud, schemas, models
from chartjournal.ai_service import GeminiAnalyzer, get_analyzer
from chartjournal.auth import get_current_user
from chartjournal.market_data import MarketDataClient, get_market_data
from chartjournal.portfolio import summarize_portfolio

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


def _portfolio_data(db: Session, user_id: str, market: MarketDataClient):
    assets = crud.get_portfolio_assets(db, user_id)
    quotes = market.get_quotes(asset.symbol for asset in assets)
    previous = {symbol: q["previous_close"] for symbol, q in quotes.items() if q.get("previous_close")}
    return summarize_portfolio(assets, previous)


@router.get("", response_model=schemas.PortfolioData)
def read_portfolio(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    market: MarketDataClient = Depends(get_market_data),
):
    """Holdings with value, unrealized P/L and the 24h change"""
    return _portfolio_data(db, user.id, market)


@router.post("/assets", response_model=schemas.PortfolioAssetValue, status_code=status.HTTP_201_CREATED)
def add_asset(
    asset: schemas.PortfolioAssetCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db_asset = crud.add_portfolio_asset(db, user.id, asset)
    return summarize_portfolio([db_asset])["assets"][0]


@router.patch("/assets/{asset_id}", response_model=schemas.PortfolioAssetValue)
def update_asset(
    asset_id: str,
    updates: schemas.PortfolioAssetUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db_asset = crud.update_portfolio_asset(db, user.id, asset_id, updates)
    if db_asset is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")
    return summarize_portfolio([db_asset])["assets"][0]


@router.delete("/assets/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_asset(asset_id: str, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not crud.delete_portfolio_asset(db, user.id, asset_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")


@router.post("/refresh-prices")
def refresh_prices(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    market: MarketDataClient = Depends(get_market_data),
):
    """Pull current prices for every held symbol"""
    assets = crud.get_portfolio_assets(db, user.id)
    quotes = market.get_quotes(asset.symbol for asset in assets)
    updated = crud.update_asset_prices(db, user.id, {symbol: q["current"] for symbol, q in quotes.items()})
    logger.info("Refreshed %d/%d prices for %s", updated, len(assets), user.id)
    return {"updated": updated}


@router.post("/advice", response_model=schemas.AIReview)
def portfolio_advice(
    request: schemas.AdviceRequest,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    market: MarketDataClient = Depends(get_market_data),
    analyzer: GeminiAnalyzer = Depends(get_analyzer),
):
    """Educational commentary on the portfolio in answer to a question"""
    portfolio = _portfolio_data(db, user.id, market)
    text, usage = analyzer.generate_financial_advice(portfolio, request.question)
    return schemas.AIReview(analysis_text=text, usage=usage)
