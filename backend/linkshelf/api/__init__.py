"""API 路由"""
from fastapi import APIRouter
from .v1 import auth, users, links, meta, collections

api_router = APIRouter()

# 注册路由
api_router.include_router(auth.router, prefix="/auth", tags=["认证"])
api_router.include_router(users.router, prefix="/users", tags=["用户"])
api_router.include_router(links.router, prefix="/links", tags=["链接"])
api_router.include_router(meta.router, tags=["元数据"])
api_router.include_router(collections.router, prefix="/collections", tags=["分享集合"])
