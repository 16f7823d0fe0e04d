from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from chatapi.models.gold import TransactionType


class GoldBalanceResponse(BaseModel):
    """골드 잔액 응답"""

    user_id: int = Field(..., description="사용자 ID")
    gold_credits: int = Field(..., description="현재 골드 잔액")

    class Config:
        from_attributes = True


class GoldTransactionEntry(BaseModel):
    """골드 원장 항목"""

    id: int = Field(..., description="원장 항목 ID")
    user_id: int = Field(..., description="사용자 ID")
    amount: int = Field(..., description="골드 변화량 (양수: 증가, 음수: 감소)")
    transaction_type: TransactionType = Field(..., description="거래 유형")
    description: str = Field(..., description="거래 설명")
    reference_id: Optional[str] = Field(None, description="참조 ID")
    created_at: datetime = Field(..., description="생성 시간")

    class Config:
        from_attributes = True


class GoldTransactionListResponse(BaseModel):
    """골드 원장 조회 응답"""

    balance: int = Field(..., description="현재 잔액")
    entries: List[GoldTransactionEntry] = Field(..., description="원장 항목 목록 (최신순)")
    total_count: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")


class GoldPurchaseRequest(BaseModel):
    """골드 구매 요청 (결제는 시뮬레이션)"""

    amount: int = Field(..., gt=0, description="구매할 골드 수량")
    payment_reference: Optional[str] = Field(
        None, min_length=1, max_length=255, description="외부 결제 참조"
    )


class AdminGoldBonusRequest(BaseModel):
    """관리자 골드 보너스 지급 요청"""

    user_id: int = Field(..., gt=0, description="사용자 ID")
    amount: int = Field(..., gt=0, description="지급할 골드")
    description: str = Field(..., min_length=1, max_length=255, description="지급 사유")


class GoldIntegrityCheckResponse(BaseModel):
    """골드 정합성 검증 응답"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    user_id: Optional[int] = Field(None, description="사용자 ID (단일 사용자 검증 시)")
    recorded_balance: Optional[int] = Field(None, description="users.gold_credits 값")
    calculated_balance: Optional[int] = Field(None, description="원장 amount 합계")
    entry_count: Optional[int] = Field(None, description="원장 항목 수")
    total_credits: Optional[int] = Field(None, description="전체 사용자 잔액 합계")
    total_amounts: Optional[int] = Field(None, description="전체 원장 amount 합계")
    user_count: Optional[int] = Field(None, description="사용자 수")
    total_entries: Optional[int] = Field(None, description="전체 원장 항목 수")
    verified_at: datetime = Field(..., description="검증 시간")
