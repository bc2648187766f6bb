from datetime import datetime, timezone

from fastapi import APIRouter
from app.api.public import auth

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["Auth"])


@router.get("/health", tags=["Health"])
def health():
    return {"status": "ok", "service": "data", "time": datetime.now(timezone.utc).isoformat()}
