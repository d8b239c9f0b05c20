"""
Pavilion - Cricket Club Scoring & Tournament Scheduling API
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pavilion import __version__
from pavilion.config import settings
from pavilion.database import init_db
from pavilion.api.tournament import router as tournament_router
from pavilion.api.scheduler import router as scheduler_router
from pavilion.api.scorecard import router as scorecard_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="Pavilion",
    description="Cricket club scoring and tournament scheduling API",
    version=__version__,
)

# CORS origins - configurable via environment variable
default_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# Add custom origins from environment (comma-separated)
if settings.CORS_ORIGINS:
    default_origins.extend([o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=default_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournament_router, prefix="/api")
app.include_router(scheduler_router, prefix="/api")
app.include_router(scorecard_router, prefix="/api")


@app.on_event("startup")
def startup_event():
    """Initialize database on startup"""
    init_db()


@app.get("/")
def root():
    """Health check endpoint"""
    return {
        "name": "Pavilion API",
        "version": __version__,
        "status": "running",
    }


@app.get("/api/health")
def health_check():
    """API health check"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
