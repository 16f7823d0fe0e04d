"""
골드 원장 데이터 모델

사용자 골드 잔액의 모든 변동을 저장하는 원장(Ledger) 테이블을 정의합니다.
골드의 구매/사용/환불/보너스는 모두 이 테이블에 기록되어 감사 추적을 제공합니다.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from chatapi.models.base import Base, BigIntegerId


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    SPEND = "spend"
    REFUND = "refund"
    BONUS = "bonus"


class GoldTransaction(Base):
    """
    골드 원장 테이블

    1. 불변성(Immutable): 한번 생성된 레코드는 수정/삭제되지 않음
    2. 완전성(Complete): 모든 잔액 변동이 기록됨
    3. 정합성(Integrity): 사용자별 amount 합계 == users.gold_credits

    reference_id 는 감사용 라벨일 뿐 유니크하지 않습니다 (중복 제거에 사용하지 않음).
    """

    __tablename__ = "gold_transactions"
    __table_args__ = (
        CheckConstraint(
            "transaction_type IN ('purchase', 'spend', 'refund', 'bonus')",
            name="ck_gold_transactions_type",
        ),
        Index("idx_gold_transactions_user", "user_id", "id"),
    )

    id: Mapped[int] = mapped_column(BigIntegerId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    # 양수면 증가, 음수면 감소
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # 형식 예시: "purchase_12_1700000000000", "room_join_34", 결제 참조 문자열
    reference_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<GoldTransaction(id={self.id}, user_id={self.user_id}, amount={self.amount}, type={self.transaction_type})>"
