from fastapi import APIRouter
from datahub.api.v1.endpoints import webhooks

router = APIRouter()

router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
