from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/api/health/readiness")
def readiness(request: Request):
    """Readiness probe reporting whether the change bridge is running."""
    service = getattr(request.app.state, "notification_service", None)
    bridge = service.bridge if service is not None else None
    return {
        "status": "ready" if service is not None else "not_ready",
        "checks": {
            "service": "ok" if service is not None else "missing",
            "bridge": {
                "attached": bool(bridge and bridge.is_attached),
                "polling": bool(bridge and bridge.is_polling),
            },
        },
    }
