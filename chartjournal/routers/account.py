# chartjournal/routers/account.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from chartjournal.database import get_db
from chartjournal import ai_service, crud, schemas, models
from chartjournal.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["account"])


# ==================== SETTINGS ====================

@router.get("/settings/api-status")
def api_status(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """idle when no key is stored, else whether the key answers"""
    api_key = crud.get_gemini_api_key(db)
    if not api_key:
        return {"status": "idle"}
    return {"status": "valid" if ai_service.verify_api_key(api_key) else "invalid"}


@router.put("/settings/gemini-key")
def update_gemini_key(
    update: schemas.GeminiKeyUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Store the key and report whether it works"""
    crud.update_gemini_api_key(db, update.api_key)
    valid = ai_service.verify_api_key(update.api_key)
    logger.info("Gemini API key updated by %s (valid=%s)", user.id, valid)
    return {"status": "valid" if valid else "invalid"}


# ==================== PROFILE & CAPITAL ====================

@router.put("/users/me/profile", response_model=schemas.User)
def update_profile(
    update: schemas.ProfileUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = crud.update_user_profile(db, user.id, update.name, update.description)
    return crud.get_user_profile(db, user)


@router.put("/users/me/capital", response_model=schemas.User)
def update_capital(
    update: schemas.CapitalUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = crud.update_initial_capital(db, user.id, update.capital)
    return crud.get_user_profile(db, user)


@router.post("/users/me/withdraw", response_model=schemas.User)
def withdraw(
    request: schemas.WithdrawalRequest,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Take money out of the base capital"""
    try:
        user = crud.withdraw_capital(db, user.id, request.amount)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud.get_user_profile(db, user)
