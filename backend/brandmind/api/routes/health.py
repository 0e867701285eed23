from datetime import datetime, timezone

from fastapi import APIRouter

import brandmind

router = APIRouter()


@router.get("/api/health")
async def health():
    return {
        "success": True,
        "message": "BrandMind API is running",
        "version": brandmind.__version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
