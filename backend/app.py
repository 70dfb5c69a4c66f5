"""
Segmentation Backend API
FastAPI server for audience segmentation, smart lists and workflow triggers
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Make the segmentation package importable when run from backend/
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend_config import LOG_LEVEL, LOG_FORMAT
from dependencies import init_async_supabase, close_async_supabase
from analytics import init_analytics, shutdown_analytics
from routers import health, rules, segments, smart_lists, workflows

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


# =============================================================================
# FASTAPI APP WITH LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage async Supabase client and analytics lifecycle."""
    # Use service role key to bypass RLS for backend operations
    init_async_supabase()
    init_analytics()
    logger.info("Segmentation API started")

    yield

    await shutdown_analytics()
    await close_async_supabase()


app = FastAPI(
    title="Segmentation API",
    description="Rule-based contact segmentation for campaigns, smart lists and workflows",
    version="1.0.0",
    lifespan=lifespan
)

# CORS - allow the CRM frontend to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to the frontend origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(rules.router)
app.include_router(segments.router)
app.include_router(smart_lists.router)
app.include_router(workflows.router)


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
