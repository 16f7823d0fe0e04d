from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """사용자 조회 결과 - 식별 정보와 잔액"""

    id: int = Field(..., description="사용자 ID")
    username: str = Field(..., description="사용자명")
    gold_credits: int = Field(..., ge=0, description="현재 골드 잔액")
    role: str = Field(..., description="사용자 역할")
    is_active: bool = Field(..., description="활성 여부")
    created_at: Optional[datetime] = Field(None, description="가입 시간")

    class Config:
        from_attributes = True
