"""工具函数"""
from .cache import cache, invalidate_cache
from .security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    issue_token_pair,
    decode_token,
    get_token_subject,
)
from .http_client import (
    safe_fetch,
    extract_meta_info,
    normalize_url,
    validate_url,
    bare_hostname,
    SSRFError,
)

__all__ = [
    "cache", "invalidate_cache",
    "hash_password", "verify_password", "create_access_token", "create_refresh_token", "issue_token_pair",
    "decode_token", "get_token_subject",
    "safe_fetch", "extract_meta_info", "normalize_url", "validate_url", "bare_hostname", "SSRFError",
]
