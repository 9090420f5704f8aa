"""内存缓存"""
from cachetools import TTLCache
from typing import Any, Optional

from ..config import settings

# 全局缓存实例（只存放可重新计算的数据，如网页元数据）
cache = TTLCache(maxsize=settings.CACHE_MAX_SIZE, ttl=settings.CACHE_TTL)


def cache_get(namespace: str, key: str) -> Optional[Any]:
    """读取缓存，未命中返回 None"""
    return cache.get(f"{namespace}:{key}")


def cache_set(namespace: str, key: str, value: Any) -> None:
    """写入缓存，None 不缓存"""
    if value is not None:
        cache[f"{namespace}:{key}"] = value


def invalidate_cache(pattern: str = None):
    """清除缓存

    Args:
        pattern: 匹配模式，None 则清除所有
    """
    if pattern is None:
        cache.clear()
    else:
        keys_to_delete = [k for k in cache.keys() if pattern in k]
        for key in keys_to_delete:
            del cache[key]
