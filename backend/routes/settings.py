"""Health check and settings endpoints."""

from fastapi import APIRouter, Depends

from backend.context import AppContext, get_context

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(ctx: AppContext = Depends(get_context)):
    """Get app settings (AI connection, timeouts, evolution thresholds)."""
    return ctx.storage.get_config()


@router.patch("/settings")
async def update_settings(body: dict, ctx: AppContext = Depends(get_context)):
    """Update app settings (partial merge). Applied on next start."""
    return ctx.storage.update_config(body)
