import logging
import time
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import sessionmaker

from chatapi.config import Settings
from chatapi.core.exceptions import BaseAPIException, ValidationError
from chatapi.database.session import get_db_context
from chatapi.models.gold import TransactionType
from chatapi.repositories.gold_ledger_repository import GoldLedgerRepository
from chatapi.repositories.user_repository import UserRepository
from chatapi.schemas.gold import (
    AdminGoldBonusRequest,
    GoldBalanceResponse,
    GoldIntegrityCheckResponse,
    GoldPurchaseRequest,
    GoldTransactionEntry,
    GoldTransactionListResponse,
)

logger = logging.getLogger(__name__)


class GoldService:
    """골드 구매/조회 관련 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    @staticmethod
    def generate_purchase_reference(user_id: int) -> str:
        """구매 참조 ID 생성 - 감사용 라벨이며 중복 제거에 사용하지 않음"""
        return f"purchase_{user_id}_{int(time.time() * 1000)}"

    def _credit(
        self,
        user_id: int,
        amount: int,
        transaction_type: TransactionType,
        description: str,
        reference_id: Optional[str],
        max_amount: Optional[int] = None,
    ) -> GoldTransactionEntry:
        with get_db_context(self.session_factory) as db:
            UserRepository(db).get_required(user_id)
            # 한도 검사는 사용자 확인 이후
            if max_amount is not None and amount > max_amount:
                raise ValidationError(
                    f"Purchase amount exceeds limit of {max_amount}",
                    details={"amount": amount, "max_amount": max_amount},
                )
            entry = GoldLedgerRepository(db).append_transaction(
                user_id=user_id,
                amount=amount,
                transaction_type=transaction_type,
                description=description,
                reference_id=reference_id,
            )
            UserRepository(db).adjust_balance(user_id, amount)
        return entry

    def purchase_gold(
        self, user_id: int, request: GoldPurchaseRequest
    ) -> GoldTransactionEntry:
        """골드 구매 (결제는 시뮬레이션)

        Args:
            user_id: 사용자 ID
            request: 구매 요청

        Returns:
            GoldTransactionEntry: 생성된 purchase 원장 항목

        Raises:
            NotFoundError: 사용자가 없는 경우
            ValidationError: 1회 구매 한도를 넘는 경우
        """
        reference_id = request.payment_reference or self.generate_purchase_reference(
            user_id
        )

        try:
            entry = self._credit(
                user_id=user_id,
                amount=request.amount,
                transaction_type=TransactionType.PURCHASE,
                description=f"Gold purchase: {request.amount} credits",
                reference_id=reference_id,
                max_amount=self.settings.PURCHASE_MAX_AMOUNT,
            )
        except BaseAPIException as e:
            logger.warning(f"Gold purchase failed for user {user_id}: {e.message}")
            raise

        logger.info(
            f"User {user_id} purchased {request.amount} gold (ref: {reference_id})"
        )
        return entry

    def grant_bonus(
        self, admin_id: int, request: AdminGoldBonusRequest
    ) -> GoldTransactionEntry:
        """관리자 골드 보너스 지급

        Args:
            admin_id: 관리자 ID
            request: 보너스 지급 요청

        Returns:
            GoldTransactionEntry: 생성된 bonus 원장 항목
        """
        try:
            entry = self._credit(
                user_id=request.user_id,
                amount=request.amount,
                transaction_type=TransactionType.BONUS,
                description=request.description,
                reference_id=f"admin_bonus_{admin_id}",
            )
        except BaseAPIException as e:
            logger.warning(
                f"Bonus grant failed for user {request.user_id}: {e.message}"
            )
            raise

        logger.info(
            f"Granted {request.amount} bonus gold to user {request.user_id} by admin {admin_id}"
        )
        return entry

    def get_balance(self, user_id: int) -> GoldBalanceResponse:
        """골드 잔액 조회"""
        with get_db_context(self.session_factory) as db:
            balance = UserRepository(db).get_balance(user_id)

        return GoldBalanceResponse(user_id=user_id, gold_credits=balance)

    def get_user_transactions(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        transaction_type: Optional[TransactionType] = None,
    ) -> GoldTransactionListResponse:
        """사용자 골드 거래 내역 조회

        Args:
            user_id: 사용자 ID
            limit: 페이지 크기 (최대 LEDGER_PAGE_MAX)
            offset: 오프셋
            transaction_type: 거래 유형 필터

        Returns:
            GoldTransactionListResponse: 현재 잔액과 최신순 거래 내역
        """
        limit = min(limit, self.settings.LEDGER_PAGE_MAX)

        with get_db_context(self.session_factory) as db:
            balance = UserRepository(db).get_balance(user_id)
            entries, total_count = GoldLedgerRepository(db).get_user_transactions(
                user_id=user_id,
                limit=limit,
                offset=offset,
                transaction_type=transaction_type,
            )

        logger.info(f"Retrieved ledger for user {user_id}: {total_count} entries")
        return GoldTransactionListResponse(
            balance=balance,
            entries=entries,
            total_count=total_count,
            has_next=offset + len(entries) < total_count,
        )

    def verify_user_integrity(self, user_id: int) -> GoldIntegrityCheckResponse:
        """사용자별 잔액/원장 정합성 검증"""
        with get_db_context(self.session_factory) as db:
            recorded = UserRepository(db).get_balance(user_id)
            calculated, entry_count = GoldLedgerRepository(db).sum_amounts_for_user(
                user_id
            )

        status = "OK" if recorded == calculated else "MISMATCH"
        if status == "MISMATCH":
            logger.warning(
                f"Gold integrity mismatch for user {user_id}: recorded={recorded}, ledger={calculated}"
            )
        else:
            logger.info(f"Gold integrity verified for user {user_id}")

        return GoldIntegrityCheckResponse(
            status=status,
            user_id=user_id,
            recorded_balance=recorded,
            calculated_balance=calculated,
            entry_count=entry_count,
            verified_at=datetime.now(timezone.utc),
        )

    def verify_global_integrity(self) -> GoldIntegrityCheckResponse:
        """전체 잔액 합계와 원장 합계 비교"""
        with get_db_context(self.session_factory) as db:
            users = UserRepository(db)
            total_credits = users.total_credits()
            user_count = users.count_users()
            total_amounts, total_entries = GoldLedgerRepository(db).sum_all_amounts()

        status = "OK" if total_credits == total_amounts else "MISMATCH"
        if status == "MISMATCH":
            logger.warning(
                f"Global gold integrity mismatch: credits={total_credits}, ledger={total_amounts}"
            )
        else:
            logger.info("Global gold integrity verified")

        return GoldIntegrityCheckResponse(
            status=status,
            total_credits=total_credits,
            total_amounts=total_amounts,
            user_count=user_count,
            total_entries=total_entries,
            verified_at=datetime.now(timezone.utc),
        )
