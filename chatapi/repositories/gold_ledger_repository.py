"""
골드 원장 리포지토리 (Ledger)

원장은 추가 전용입니다. 이 리포지토리에는 수정/삭제 메서드가 없습니다.
"""

from typing import List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from chatapi.models.gold import GoldTransaction as GoldTransactionModel
from chatapi.models.gold import TransactionType
from chatapi.repositories.base import BaseRepository
from chatapi.schemas.gold import GoldTransactionEntry


class GoldLedgerRepository(BaseRepository[GoldTransactionModel, GoldTransactionEntry]):
    def __init__(self, db: Session):
        super().__init__(GoldTransactionModel, GoldTransactionEntry, db)

    def append_transaction(
        self,
        user_id: int,
        amount: int,
        transaction_type: TransactionType,
        description: str,
        reference_id: Optional[str] = None,
    ) -> GoldTransactionEntry:
        """원장 항목 추가 (기존 항목은 절대 수정하지 않음)"""
        return self.create(
            user_id=user_id,
            amount=amount,
            transaction_type=transaction_type.value,
            description=description,
            reference_id=reference_id,
        )

    def get_user_transactions(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        transaction_type: Optional[TransactionType] = None,
    ) -> Tuple[List[GoldTransactionEntry], int]:
        """사용자 원장 조회 (최신순, 페이징) - (항목 목록, 전체 건수) 반환"""
        query = self.db.query(self.model_class).filter(
            self.model_class.user_id == user_id
        )
        if transaction_type is not None:
            query = query.filter(
                self.model_class.transaction_type == transaction_type.value
            )

        total_count = query.count()
        model_instances = (
            query.order_by(desc(self.model_class.id)).limit(limit).offset(offset).all()
        )

        return [self._to_schema(instance) for instance in model_instances], total_count

    def sum_amounts_for_user(self, user_id: int) -> Tuple[int, int]:
        """사용자 원장의 (amount 합계, 항목 수)"""
        total, entries = (
            self.db.query(
                func.coalesce(func.sum(self.model_class.amount), 0),
                func.count(self.model_class.id),
            )
            .filter(self.model_class.user_id == user_id)
            .one()
        )
        return int(total), int(entries)

    def sum_all_amounts(self) -> Tuple[int, int]:
        """전체 원장의 (amount 합계, 항목 수)"""
        total, entries = self.db.query(
            func.coalesce(func.sum(self.model_class.amount), 0),
            func.count(self.model_class.id),
        ).one()
        return int(total), int(entries)
