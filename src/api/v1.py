"""Centralized v1 API router — all module routers are included here."""

from fastapi import APIRouter

from src.modules.audit.router import router as audit_router
from src.modules.category.router import router as category_router
from src.modules.chat.router import router as chat_router
from src.modules.dispute.router import router as dispute_router
from src.modules.files.router import router as files_router
from src.modules.identity.router import router as identity_router
from src.modules.order.router import router as order_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(identity_router)
v1_router.include_router(order_router)
v1_router.include_router(chat_router)
v1_router.include_router(dispute_router)
v1_router.include_router(files_router)
v1_router.include_router(category_router)
v1_router.include_router(audit_router)
