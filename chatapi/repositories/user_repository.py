"""
사용자 잔액 리포지토리 (Balance Store)

users.gold_credits 는 유일한 잔액 원본입니다. 잔액 변경은 항상 단일 조건부 UPDATE
(`gold_credits = gold_credits + :delta WHERE gold_credits + :delta >= 0`)로 수행하여
동시 차감 요청이 있어도 음수 잔액이 생기지 않습니다.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from chatapi.core.exceptions import InsufficientFundsError, NotFoundError
from chatapi.models.user import User as UserModel
from chatapi.repositories.base import BaseRepository
from chatapi.schemas.user import User as UserSchema


class UserRepository(BaseRepository[UserModel, UserSchema]):
    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def get_required(self, user_id: int) -> UserSchema:
        user = self.get_by_id(user_id)
        if user is None:
            raise NotFoundError(
                f"User with id {user_id} not found", details={"user_id": user_id}
            )
        return user

    def get_balance(self, user_id: int) -> int:
        """현재 잔액 조회 - 사용자가 없으면 NotFoundError"""
        balance: Optional[int] = self.db.execute(
            select(self.model_class.gold_credits).where(self.model_class.id == user_id)
        ).scalar_one_or_none()
        if balance is None:
            raise NotFoundError(
                f"User with id {user_id} not found", details={"user_id": user_id}
            )
        return balance

    def adjust_balance(self, user_id: int, delta: int) -> int:
        """잔액을 delta 만큼 원자적으로 증감하고 변경 후 잔액을 반환

        Raises:
            NotFoundError: 사용자가 없는 경우
            InsufficientFundsError: 변경 후 잔액이 음수가 되는 경우 (아무것도 변경되지 않음)
        """
        new_balance_expr = self.model_class.gold_credits + delta
        result = self.db.execute(
            update(self.model_class)
            .where(self.model_class.id == user_id)
            .where(new_balance_expr >= 0)
            .values(gold_credits=new_balance_expr, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            current = self.get_balance(user_id)
            raise InsufficientFundsError(
                f"Insufficient gold credits. Required: {abs(delta)}, Available: {current}",
                details={"required": abs(delta), "available": current},
            )

        return self.get_balance(user_id)

    def total_credits(self) -> int:
        result = self.db.query(func.sum(self.model_class.gold_credits)).scalar()
        return int(result or 0)

    def count_users(self) -> int:
        return self.count()
