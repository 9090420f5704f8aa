"""应用配置"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
from pathlib import Path
import os

# 项目根目录: backend/linkshelf/config.py -> ../../
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent
_project_root = _backend_dir.parent

# 检测运行环境
if os.path.exists("/app/data"):
    # Docker 环境
    _data_dir = Path("/app/data")
    _env_file = Path("/app/.env") if Path("/app/.env").exists() else None
else:
    # 本地开发环境
    _data_dir = _project_root / "data"
    _env_file = _project_root / ".env" if (_project_root / ".env").exists() else None


class Settings(BaseSettings):
    """应用设置"""
    # 应用
    APP_NAME: str = "LinkShelf"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 数据库
    DATABASE_URL: str = f"sqlite+aiosqlite:///{_data_dir}/linkshelf.db"

    # JWT
    JWT_SECRET_KEY: str = "change-this-secret-key-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 小时
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # 缓存（网页元数据）
    CACHE_TTL: int = 300  # 5 分钟
    CACHE_MAX_SIZE: int = 500

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # 日志
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None  # 为空时只输出到控制台

    # 网页元数据抓取
    META_FETCH_TIMEOUT: float = 10.0
    META_MAX_REDIRECTS: int = 5
    META_MAX_RESPONSE_SIZE: int = 2 * 1024 * 1024  # 2MB
    META_USER_AGENT: str = "Mozilla/5.0 (compatible; LinkShelf/1.0)"

    # 分享集合
    SHARE_ID_MAX_ATTEMPTS: int = 5
    DEFAULT_COLLECTION_NAME: str = "My Collection"

    class Config:
        env_file = str(_env_file) if _env_file else ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


settings = get_settings()
