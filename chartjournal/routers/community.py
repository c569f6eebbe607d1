# chartjournal/routers/community.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from chartjournal.database import get_db
from chartjournal import crud, schemas, models
from chartjournal.auth import get_current_user

router = APIRouter(prefix="/api/community", tags=["community"])


def _get_share_or_404(db: Session, analysis_id: str):
    shared = crud.get_community_analysis(db, analysis_id)
    if shared is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shared analysis not found")
    return shared


@router.get("", response_model=List[schemas.CommunityAnalysis])
def read_feed(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Shared analyses, newest first; clients poll this for updates"""
    return crud.get_community_analyses(db, user.id, limit=limit, offset=offset)


@router.post("/share", response_model=schemas.CommunityAnalysis, status_code=status.HTTP_201_CREATED)
def share_analysis(
    request: schemas.ShareRequest,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shared = crud.share_analysis(db, user.id, request.analysis_id, request.title, request.description)
    if shared is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")
    return crud.community_entry(db, user.id, shared, user.name)


@router.get("/stats", response_model=schemas.CommunityStats)
def read_community_stats(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.get_community_stats(db, user.id)


@router.post("/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_read(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    crud.mark_community_read(db, user.id)


@router.get("/{analysis_id}/comments", response_model=List[schemas.CommunityComment])
def read_comments(analysis_id: str, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    _get_share_or_404(db, analysis_id)
    return crud.get_comments(db, analysis_id)


@router.post("/{analysis_id}/comments", response_model=schemas.CommunityComment,
             status_code=status.HTTP_201_CREATED)
def add_comment(
    analysis_id: str,
    comment: schemas.CommentCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db_comment = crud.add_comment(db, user, analysis_id, comment.content)
    if db_comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shared analysis not found")
    return db_comment


@router.post("/{analysis_id}/like", response_model=schemas.CommunityAnalysis)
def like_analysis(
    analysis_id: str,
    request: schemas.LikeRequest,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Toggle a like or dislike; the same reaction twice removes it"""
    shared = crud.toggle_like(db, user.id, analysis_id, request.like_type)
    if shared is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shared analysis not found")
    owner = crud.get_user(db, shared.user_id)
    return crud.community_entry(db, user.id, shared, owner.name if owner else None)
