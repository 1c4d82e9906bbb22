import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pixiedvc.config import ALLOWED_ORIGINS
from pixiedvc.logging_config import setup_logging
from pixiedvc.middleware import RequestIDMiddleware
from pixiedvc.routes.cron import router as cron_router
from pixiedvc.routes.health import router as health_router
from pixiedvc.routes.matches import router as matches_router
from pixiedvc.routes.matching import router as matching_router
from pixiedvc.routes.metrics import router as metrics_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="PixieDVC Matching API",
    description="Booking-to-owner matching, owner responses and rental creation",
    version="1.0.0",
)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(matching_router, prefix="/admin", tags=["Admin"])
app.include_router(matches_router, prefix="/matches", tags=["Matches"])
app.include_router(cron_router, prefix="/cron", tags=["Cron"])
