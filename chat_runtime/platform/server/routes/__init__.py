from fastapi import APIRouter

from chat_runtime.platform.server.routes.base import base_router
from chat_runtime.platform.server.routes.chat import chat_router

root = APIRouter()
root.include_router(base_router)
root.include_router(chat_router)
