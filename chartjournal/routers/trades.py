# chartjournal/routers/trades.py
import base64
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session

from chartjournal.database import get_db
from chartjournal import crud, schemas, models, stats
from chartjournal.ai_service import GeminiAnalyzer, get_analyzer
from chartjournal.auth import get_current_user
from chartjournal.calculator import calculate_trade_setup
from chartjournal.config import settings
from chartjournal.export import trades_to_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trades", tags=["trades"])


@router.get("", response_model=List[schemas.Trade])
def read_trades(
    mode: schemas.DashboardMode = "all",
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Trade history, newest first"""
    return stats.filter_by_mode(crud.get_trades(db, user.id), mode)


@router.post("", response_model=schemas.Trade, status_code=status.HTTP_201_CREATED)
def create_trade(
    trade: schemas.TradeCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record a trade entered by hand"""
    return crud.create_trade(db, user.id, trade)


@router.post("/analyze", response_model=schemas.ChartAnalysisResult, status_code=status.HTTP_201_CREATED)
def analyze_chart(
    image: UploadFile = File(...),
    mode: schemas.TradingMode = Form(...),
    account_balance: Optional[float] = Form(None),
    risk_per_trade: float = Form(1.0),
    leverage: float = Form(10.0),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    analyzer: GeminiAnalyzer = Depends(get_analyzer),
):
    """Analyze a chart screenshot and journal the suggested setup as a pending trade"""
    if not (image.content_type or "").startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please upload an image file.")

    # One byte past the limit is enough to know it is too big
    content = image.file.read(settings.max_upload_bytes + 1)
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The uploaded image is empty.")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds the {settings.MAX_UPLOAD_SIZE} MB upload limit.",
        )

    data_url = f"data:{image.content_type};base64,{base64.b64encode(content).decode('ascii')}"
    trades = crud.get_trades(db, user.id)
    current_equity = (user.initial_capital or 0) + stats.net_pl(trades)
    risk_params = {
        "account_balance": account_balance if account_balance is not None else current_equity,
        "risk_per_trade": risk_per_trade,
        "leverage": leverage,
    }

    analysis, usage = analyzer.analyze_chart(data_url, mode, risk_params, current_equity)
    trade = crud.create_trade(db, user.id, schemas.TradeCreate(**analysis, image=data_url))
    logger.info("User %s analyzed a %s chart -> trade %s (%d tokens)", user.id, mode, trade.id, usage["total"])
    return schemas.ChartAnalysisResult(trade=trade, usage=usage)


@router.post("/calculate", response_model=schemas.TradeCalculationResult)
def calculate_setup(calc: schemas.TradeCalculation, user: models.User = Depends(get_current_user)):
    """Position size, margin and targets for a planned trade; nothing is stored"""
    try:
        return calculate_trade_setup(**calc.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/export.csv")
def export_trades(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Full trade history as a CSV download"""
    content = trades_to_csv(crud.get_trades(db, user.id))
    filename = f"full_trade_history_{datetime.now(timezone.utc).date().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{trade_id}", response_model=schemas.Trade)
def read_trade(trade_id: str, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    db_trade = crud.get_trade(db, user.id, trade_id)
    if db_trade is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")
    return crud.trade_to_schema(db_trade)


@router.patch("/{trade_id}/status", response_model=schemas.Trade)
def update_trade_status(
    trade_id: str,
    update: schemas.TradeStatusUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Close a pending trade as a profit or a stop-loss"""
    try:
        trade = crud.update_trade_status(db, user.id, trade_id, update.status, update.outcome_amount)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if trade is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")
    return trade


@router.delete("/{trade_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_trade(trade_id: str, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not crud.delete_trade(db, user.id, trade_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")
