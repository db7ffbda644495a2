"""Liveness routes."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint. Reports the process, not the WhatsApp link."""
    return {"status": "ok"}
