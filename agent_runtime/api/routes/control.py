"""Control API routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...app import IApplication


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


def create_control_router(app: IApplication) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Stop every agent loop and clear all state."""
        try:
            await app.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
