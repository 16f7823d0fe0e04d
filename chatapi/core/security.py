from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError

from chatapi.config import settings
from chatapi.core.exceptions import AuthenticationError, AuthorizationError


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """토큰 발급은 인증 서비스 담당 - 로컬 개발 및 테스트용"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    return encoded_jwt


# Security scheme
security = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    user_id: int
    is_admin: bool = False


def decode_token(token: str) -> TokenPayload:
    """JWT 토큰을 검증하고 payload 를 반환합니다."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError):
        raise AuthenticationError("Invalid authentication credentials")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenPayload:
    """필수 사용자 인증 - 유효한 토큰이 필요함"""
    if not credentials:
        raise AuthenticationError("Authentication required")
    return decode_token(credentials.credentials)


def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[TokenPayload]:
    """선택적 사용자 인증 - 토큰이 없거나 유효하지 않아도 None 반환"""
    if not credentials:
        return None
    try:
        return decode_token(credentials.credentials)
    except AuthenticationError:
        return None


def require_admin(
    current_user: TokenPayload = Depends(get_current_user),
) -> TokenPayload:
    """관리자 권한 확인"""
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user
