"""
골드 API 라우터

사용자용 엔드포인트:
- GET /gold/balance: 내 골드 잔액
- POST /gold/purchase: 골드 구매 (결제 시뮬레이션)
- GET /gold/transactions: 내 골드 거래 내역
- GET /gold/integrity/my: 내 잔액/원장 정합성 검증

관리자용 엔드포인트:
- GET /gold/admin/integrity/global: 전체 정합성 검증
- POST /gold/admin/bonus: 보너스 골드 지급

인증 및 권한:
- 모든 엔드포인트는 Bearer 토큰 인증 필요
- 관리자 엔드포인트는 is_admin=True 권한 필요
"""

import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, status

from chatapi.containers import Container
from chatapi.core.security import TokenPayload, get_current_user, require_admin
from chatapi.models.gold import TransactionType
from chatapi.schemas.gold import (
    AdminGoldBonusRequest,
    GoldBalanceResponse,
    GoldIntegrityCheckResponse,
    GoldPurchaseRequest,
    GoldTransactionEntry,
    GoldTransactionListResponse,
)
from chatapi.services.gold_service import GoldService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gold", tags=["gold"])


@router.get("/balance", response_model=GoldBalanceResponse)
@inject
def get_my_balance(
    current_user: TokenPayload = Depends(get_current_user),
    gold_service: GoldService = Depends(Provide[Container.services.gold_service]),
) -> GoldBalanceResponse:
    """내 골드 잔액 조회"""
    return gold_service.get_balance(current_user.user_id)


@router.post(
    "/purchase",
    response_model=GoldTransactionEntry,
    status_code=status.HTTP_201_CREATED,
)
@inject
def purchase_gold(
    request: GoldPurchaseRequest,
    current_user: TokenPayload = Depends(get_current_user),
    gold_service: GoldService = Depends(Provide[Container.services.gold_service]),
) -> GoldTransactionEntry:
    """
    골드 구매

    결제 게이트웨이 연동 없이 요청 즉시 잔액에 반영됩니다.
    payment_reference 가 없으면 purchase_{user_id}_{epoch_ms} 형식으로 생성됩니다.

    Returns:
        GoldTransactionEntry: 생성된 purchase 원장 항목
    """
    return gold_service.purchase_gold(current_user.user_id, request)


@router.get("/transactions", response_model=GoldTransactionListResponse)
@inject
def get_my_transactions(
    limit: int = Query(50, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    transaction_type: Optional[TransactionType] = Query(
        None, description="거래 유형 필터"
    ),
    current_user: TokenPayload = Depends(get_current_user),
    gold_service: GoldService = Depends(Provide[Container.services.gold_service]),
) -> GoldTransactionListResponse:
    """
    내 골드 거래 내역 조회

    Query Parameters:
        limit: 한 페이지에 조회할 항목 수 (1-100, 기본: 50)
        offset: 건너뛸 항목 수 (기본: 0)
        transaction_type: purchase, spend, refund, bonus 중 하나
    """
    return gold_service.get_user_transactions(
        user_id=current_user.user_id,
        limit=limit,
        offset=offset,
        transaction_type=transaction_type,
    )


@router.get("/integrity/my", response_model=GoldIntegrityCheckResponse)
@inject
def verify_my_integrity(
    current_user: TokenPayload = Depends(get_current_user),
    gold_service: GoldService = Depends(Provide[Container.services.gold_service]),
) -> GoldIntegrityCheckResponse:
    """내 잔액과 원장 합계 비교"""
    return gold_service.verify_user_integrity(current_user.user_id)


# ============================================================================
# 관리자용 엔드포인트
# ============================================================================


@router.get("/admin/integrity/global", response_model=GoldIntegrityCheckResponse)
@inject
def verify_global_integrity(
    current_user: TokenPayload = Depends(require_admin),
    gold_service: GoldService = Depends(Provide[Container.services.gold_service]),
) -> GoldIntegrityCheckResponse:
    """전체 사용자 잔액 합계와 원장 합계 비교 (관리자 전용)"""
    return gold_service.verify_global_integrity()


@router.post(
    "/admin/bonus",
    response_model=GoldTransactionEntry,
    status_code=status.HTTP_201_CREATED,
)
@inject
def grant_bonus(
    request: AdminGoldBonusRequest,
    current_user: TokenPayload = Depends(require_admin),
    gold_service: GoldService = Depends(Provide[Container.services.gold_service]),
) -> GoldTransactionEntry:
    """보너스 골드 지급 (관리자 전용)"""
    logger.info(
        f"Admin {current_user.user_id} granting {request.amount} gold to user {request.user_id}"
    )
    return gold_service.grant_bonus(current_user.user_id, request)
