# chartjournal/main.py
import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from . import crud, stats, models
from .ai_service import AIServiceError
from .auth import get_current_user_optional
from .config import settings
from .database import get_db, engine, Base
from .routers import account, auth, calendar, community, portfolio, trades
from .routers import stats as stats_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s | %(name)s | %(levelname)-8s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

settings.validate_settings()
if settings.is_development:
    settings.log_config_summary()

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME, version=settings.VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Templates
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

for module in (auth, trades, stats_router, account, portfolio, community, calendar):
    app.include_router(module.router)


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request: Request, exc: AIServiceError):
    logger.warning("AI request failed (%s): %s", exc.category, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.user_message, "category": exc.category},
    )


# ==================== PAGES ====================

@app.get("/", response_class=HTMLResponse)
async def home_page():
    """Home page - redirects directly to dashboard"""
    return RedirectResponse(url="/dashboard")


@app.get("/dashboard", response_class=HTMLResponse)
def dashboard_page(
    request: Request,
    mode: str = "all",
    user: models.User = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
):
    """Dashboard page"""
    if mode not in stats.DASHBOARD_MODES:
        mode = "all"
    context = {"user": user, "mode": mode, "modes": stats.DASHBOARD_MODES}

    if user is not None:
        all_trades = crud.get_trades(db, user.id)
        context.update({
            "stats": stats.compute_mode_stats(all_trades, mode, user.initial_capital or 0),
            "advanced": stats.compute_advanced_metrics(all_trades, mode),
            "tier": stats.derive_tier(all_trades),
            "recent_trades": stats.filter_by_mode(all_trades, mode)[:10],
        })

    return templates.TemplateResponse(request, "dashboard.html", context)


# ==================== HEALTH CHECK ====================

@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "ok",
        "message": f"{settings.APP_NAME} is running",
        "time": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("chartjournal.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
