from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from database.exceptions import StoreError
from database.mongo_adapter import get_mongo_adapter
from uploads_api.config.settings import Settings
from uploads_api.dependencies import get_app_settings

router = APIRouter()


@router.get("/health")
async def health_check(settings: Settings = Depends(get_app_settings)):
    """
    Health check endpoint for monitoring API status and component readiness.

    Returns status of the API, the MongoDB deployment and whether a PDF
    conversion service is configured.
    """
    health_status = {
        "status": "ok",
        "environment": settings.environment,
        "components": {
            "api": "ready",
            "database": "initializing",
            "pdf_converter": "configured" if settings.pdf_converter_url else "not configured",
        },
        "ready": False,
    }

    # Check database status
    try:
        adapter = get_mongo_adapter(settings)
        await run_in_threadpool(adapter.connect)
        reachable = await run_in_threadpool(adapter.ping)
    except (StoreError, ValueError) as e:
        health_status["components"]["database"] = f"error: {str(e)}"
        health_status["status"] = "degraded"
    else:
        if reachable:
            health_status["components"]["database"] = "ready"
        else:
            health_status["components"]["database"] = "error: ping failed"
            health_status["status"] = "degraded"

    health_status["ready"] = health_status["components"]["database"] == "ready"
    return health_status
