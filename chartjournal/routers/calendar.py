# chartjournal/routers/calendar.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from chartjournal import schemas, models
from chartjournal.auth import get_current_user
from chartjournal.market_data import MarketDataClient, get_market_data

router = APIRouter(prefix="/api", tags=["calendar"])


@router.get("/economic-calendar", response_model=List[schemas.EconomicEvent])
def economic_calendar(
    start: Optional[date] = None,
    end: Optional[date] = None,
    user: models.User = Depends(get_current_user),
    market: MarketDataClient = Depends(get_market_data),
):
    """Scheduled macro events; sample events when no market data key is set"""
    if start and end and end < start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end must not be before start")
    return market.get_economic_calendar(start, end)
