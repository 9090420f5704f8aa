"""密码哈希与 JWT 令牌"""
from datetime import datetime, timedelta
from typing import Optional, Tuple
from jose import jwt, JWTError
from passlib.context import CryptContext

from ..config import settings

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(user_id: str, token_type: str, lifetime: timedelta) -> str:
    payload = {
        "sub": user_id,
        "exp": datetime.utcnow() + lifetime,
        "type": token_type,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str) -> str:
    """短期访问令牌，用于 Authorization: Bearer"""
    return _encode(user_id, ACCESS, timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user_id: str) -> str:
    """长期刷新令牌，只能用于 /auth/refresh"""
    return _encode(user_id, REFRESH, timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS))


def issue_token_pair(user_id: str) -> Tuple[str, str]:
    return create_access_token(user_id), create_refresh_token(user_id)


def decode_token(token: str) -> Optional[dict]:
    """解码令牌，签名错误或过期返回 None"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def get_token_subject(token: str, token_type: str = ACCESS) -> Optional[str]:
    """
    校验令牌并返回其中的用户 id

    访问令牌和刷新令牌不能互换使用，类型不符与签名无效同样返回 None。
    """
    payload = decode_token(token)
    if payload is None or payload.get("type") != token_type:
        return None
    return payload.get("sub")
