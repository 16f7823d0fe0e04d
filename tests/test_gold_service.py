import re
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from chatapi.core.exceptions import NotFoundError, StoreFailureError, ValidationError
from chatapi.models.gold import GoldTransaction, TransactionType
from chatapi.models.room import RoomType
from chatapi.models.user import User
from chatapi.schemas.gold import AdminGoldBonusRequest, GoldPurchaseRequest
from chatapi.schemas.room import RoomJoinRequest
from chatapi.services.gold_service import GoldService
from chatapi.services.room_service import RoomService


@pytest.fixture
def gold_service(session_factory, settings):
    return GoldService(session_factory=session_factory, settings=settings)


def _balance(session_factory, user_id):
    with session_factory() as db:
        return db.get(User, user_id).gold_credits


def _purchases(session_factory, user_id):
    with session_factory() as db:
        return (
            db.query(GoldTransaction)
            .filter(
                GoldTransaction.user_id == user_id,
                GoldTransaction.transaction_type == TransactionType.PURCHASE.value,
            )
            .all()
        )


class TestPurchaseGold:
    """골드 구매 테스트"""

    def test_purchase_credits_balance(self, gold_service, session_factory, make_user):
        """잔액 50 사용자가 100 골드 구매 시 잔액 150, purchase 원장 1건"""
        # Given
        user_id = make_user(gold_credits=50)

        # When
        entry = gold_service.purchase_gold(user_id, GoldPurchaseRequest(amount=100))

        # Then
        assert entry.amount == 100
        assert entry.transaction_type == TransactionType.PURCHASE
        assert entry.description == "Gold purchase: 100 credits"
        assert re.match(r"^purchase_\d+_\d+$", entry.reference_id)
        assert f"_{user_id}_" in entry.reference_id
        assert _balance(session_factory, user_id) == 150

        purchases = _purchases(session_factory, user_id)
        assert len(purchases) == 1
        assert purchases[0].id == entry.id

    def test_payment_reference_is_kept(self, gold_service, make_user):
        user_id = make_user()

        entry = gold_service.purchase_gold(
            user_id, GoldPurchaseRequest(amount=10, payment_reference="pg_abc123")
        )

        assert entry.reference_id == "pg_abc123"

    def test_repeated_purchases_accumulate(self, gold_service, session_factory, make_user):
        """reference_id 는 중복 제거에 쓰이지 않으므로 같은 참조로도 매번 적립"""
        user_id = make_user()

        for _ in range(3):
            gold_service.purchase_gold(
                user_id, GoldPurchaseRequest(amount=20, payment_reference="same_ref")
            )

        assert _balance(session_factory, user_id) == 60
        assert len(_purchases(session_factory, user_id)) == 3

    def test_unknown_user(self, gold_service, snapshot):
        before = snapshot()

        with pytest.raises(NotFoundError) as exc_info:
            gold_service.purchase_gold(999, GoldPurchaseRequest(amount=100))

        assert exc_info.value.message == "User with id 999 not found"
        assert snapshot() == before

    def test_amount_over_limit(self, gold_service, settings, make_user, snapshot):
        user_id = make_user()
        before = snapshot()

        with pytest.raises(ValidationError):
            gold_service.purchase_gold(
                user_id,
                GoldPurchaseRequest(amount=settings.PURCHASE_MAX_AMOUNT + 1),
            )

        assert snapshot() == before

    def test_unknown_user_over_limit_is_not_found(self, gold_service, settings, snapshot):
        """없는 사용자는 한도 초과 금액이어도 NotFound"""
        before = snapshot()

        with pytest.raises(NotFoundError):
            gold_service.purchase_gold(
                999, GoldPurchaseRequest(amount=settings.PURCHASE_MAX_AMOUNT + 1)
            )

        assert snapshot() == before

    def test_balance_failure_after_ledger_insert_rolls_back(
        self, gold_service, make_user, snapshot
    ):
        """원장 기록 후 잔액 반영이 실패하면 원장 항목도 남지 않음"""
        # Given
        user_id = make_user(gold_credits=50)
        before = snapshot()

        # When
        with patch(
            "chatapi.repositories.user_repository.UserRepository.adjust_balance",
            side_effect=OperationalError("UPDATE", {}, Exception("connection lost")),
        ):
            with pytest.raises(StoreFailureError) as exc_info:
                gold_service.purchase_gold(user_id, GoldPurchaseRequest(amount=100))

        # Then
        assert exc_info.value.status_code == 503
        assert snapshot() == before

    def test_generated_reference_contains_user_id(self):
        reference = GoldService.generate_purchase_reference(42)

        assert reference.startswith("purchase_42_")
        assert reference.split("_")[2].isdigit()


class TestGoldQueries:
    """잔액/거래 내역 조회 테스트"""

    def test_get_balance(self, gold_service, make_user):
        user_id = make_user(gold_credits=75)

        balance = gold_service.get_balance(user_id)

        assert balance.user_id == user_id
        assert balance.gold_credits == 75

    def test_get_balance_unknown_user(self, gold_service):
        with pytest.raises(NotFoundError):
            gold_service.get_balance(999)

    def test_transactions_newest_first(self, gold_service, make_user):
        # Given
        user_id = make_user(gold_credits=10)
        gold_service.purchase_gold(user_id, GoldPurchaseRequest(amount=20))
        gold_service.purchase_gold(user_id, GoldPurchaseRequest(amount=30))

        # When
        result = gold_service.get_user_transactions(user_id)

        # Then
        assert result.balance == 60
        assert result.total_count == 3
        assert result.has_next is False
        assert [entry.amount for entry in result.entries] == [30, 20, 10]

    def test_transactions_pagination(self, gold_service, make_user):
        user_id = make_user()
        for amount in (1, 2, 3, 4, 5):
            gold_service.purchase_gold(user_id, GoldPurchaseRequest(amount=amount))

        first_page = gold_service.get_user_transactions(user_id, limit=2, offset=0)
        last_page = gold_service.get_user_transactions(user_id, limit=2, offset=4)

        assert [entry.amount for entry in first_page.entries] == [5, 4]
        assert first_page.has_next is True
        assert [entry.amount for entry in last_page.entries] == [1]
        assert last_page.has_next is False
        assert last_page.total_count == 5

    def test_transactions_limit_is_clamped(self, gold_service, settings, make_user):
        user_id = make_user()
        for _ in range(3):
            gold_service.purchase_gold(user_id, GoldPurchaseRequest(amount=1))
        settings.LEDGER_PAGE_MAX = 2

        result = gold_service.get_user_transactions(user_id, limit=50)

        assert len(result.entries) == 2
        assert result.has_next is True

    def test_transactions_type_filter(
        self, gold_service, session_factory, settings, make_user, make_room
    ):
        owner_id = make_user()
        user_id = make_user(gold_credits=100)
        room_id = make_room(owner_id, room_type=RoomType.PREMIUM, gold_cost=40)
        RoomService(session_factory, settings).join_room(
            user_id, RoomJoinRequest(room_id=room_id)
        )

        result = gold_service.get_user_transactions(
            user_id, transaction_type=TransactionType.SPEND
        )

        assert result.total_count == 1
        assert result.entries[0].amount == -40
        assert result.balance == 60


class TestIntegrityAndBonus:
    """정합성 검증 및 관리자 보너스 테스트"""

    def test_user_integrity_after_activity(
        self, gold_service, session_factory, settings, make_user, make_room
    ):
        """구매/입장 후에도 잔액 == 원장 합계"""
        owner_id = make_user()
        user_id = make_user(gold_credits=30)
        room_id = make_room(owner_id, room_type=RoomType.PREMIUM, gold_cost=50)
        gold_service.purchase_gold(user_id, GoldPurchaseRequest(amount=40))
        RoomService(session_factory, settings).join_room(
            user_id, RoomJoinRequest(room_id=room_id)
        )

        result = gold_service.verify_user_integrity(user_id)

        assert result.status == "OK"
        assert result.recorded_balance == 20
        assert result.calculated_balance == 20
        assert result.entry_count == 3

    def test_user_integrity_detects_mismatch(self, gold_service, session_factory, make_user):
        user_id = make_user(gold_credits=10)
        with session_factory() as db:
            db.get(User, user_id).gold_credits = 999
            db.commit()

        result = gold_service.verify_user_integrity(user_id)

        assert result.status == "MISMATCH"
        assert result.recorded_balance == 999
        assert result.calculated_balance == 10

    def test_user_integrity_unknown_user(self, gold_service):
        with pytest.raises(NotFoundError):
            gold_service.verify_user_integrity(999)

    def test_global_integrity(self, gold_service, make_user):
        make_user(gold_credits=10)
        user_id = make_user(gold_credits=5)
        gold_service.purchase_gold(user_id, GoldPurchaseRequest(amount=7))

        result = gold_service.verify_global_integrity()

        assert result.status == "OK"
        assert result.total_credits == 22
        assert result.total_amounts == 22
        assert result.user_count == 2
        assert result.total_entries == 3

    def test_grant_bonus(self, gold_service, session_factory, make_user):
        admin_id = make_user(role="admin")
        user_id = make_user(gold_credits=5)

        entry = gold_service.grant_bonus(
            admin_id,
            AdminGoldBonusRequest(user_id=user_id, amount=15, description="Event reward"),
        )

        assert entry.transaction_type == TransactionType.BONUS
        assert entry.amount == 15
        assert entry.description == "Event reward"
        assert _balance(session_factory, user_id) == 20

    def test_grant_bonus_unknown_user(self, gold_service, make_user, snapshot):
        admin_id = make_user(role="admin")
        before = snapshot()

        with pytest.raises(NotFoundError):
            gold_service.grant_bonus(
                admin_id,
                AdminGoldBonusRequest(user_id=999, amount=15, description="Event reward"),
            )

        assert snapshot() == before

    def test_grant_bonus_balance_failure_rolls_back(self, gold_service, make_user, snapshot):
        """보너스 잔액 반영 실패 시 bonus 원장 항목도 롤백"""
        admin_id = make_user(role="admin")
        user_id = make_user(gold_credits=5)
        before = snapshot()

        with patch(
            "chatapi.repositories.user_repository.UserRepository.adjust_balance",
            side_effect=OperationalError("UPDATE", {}, Exception("timeout")),
        ):
            with pytest.raises(StoreFailureError):
                gold_service.grant_bonus(
                    admin_id,
                    AdminGoldBonusRequest(user_id=user_id, amount=15, description="Event reward"),
                )

        assert snapshot() == before
