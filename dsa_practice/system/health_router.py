from fastapi import APIRouter, Request

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(request: Request):
    """Liveness plus a MongoDB ping"""
    mongo = getattr(request.app.state, "mongo", None)
    database_up = await mongo.ping() if mongo is not None else False
    return {"status": "ok", "database": "UP" if database_up else "DOWN"}
