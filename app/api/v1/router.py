from fastapi import APIRouter
from api.v1.routes.webhook_retry import router as webhook_retry_router


# Main v1 router (includes all endpoints)
router = APIRouter()
router.include_router(webhook_retry_router)
