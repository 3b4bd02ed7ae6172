from fastapi import APIRouter

from app.api.v1 import receipts

router = APIRouter()

router.include_router(receipts.router)
