from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from chatapi.models.base import BaseModel, BigIntegerId


class UserRole(str, Enum):
    """사용자 역할 정의 - 사용자당 단일 역할"""

    USER = "user"  # 일반 사용자
    MODERATOR = "moderator"  # 운영자
    ADMIN = "admin"  # 관리자


class User(BaseModel):
    """사용자 테이블

    계정/인증 정보는 인증 서브시스템 소유이며, 이 서비스는 gold_credits 만
    원자적 조건부 UPDATE 로 증감합니다.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("gold_credits >= 0", name="ck_users_gold_credits_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntegerId, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # 현재 골드 잔액 - 항상 gold_transactions.amount 합계와 같아야 함
    gold_credits: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.USER.value, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, gold_credits={self.gold_credits})>"
