"""
Health check endpoints.
"""

from fastapi import APIRouter

from dependencies import get_async_supabase

router = APIRouter(tags=["Health"])


@router.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Segmentation API"}


@router.get("/health")
async def health():
    """Health check with Supabase connection test."""
    try:
        await get_async_supabase().request("contacts?select=id&limit=1", 'GET')
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "database": "disconnected", "error": str(e)}
