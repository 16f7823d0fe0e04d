from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, InvalidRequestError

from chatapi.core.exceptions import (
    AlreadyMemberError,
    InsufficientFundsError,
    NotFoundError,
    StoreFailureError,
)
from chatapi.database.session import get_db_context
from chatapi.models.gold import TransactionType
from chatapi.models.room import ParticipantRole, RoomType
from chatapi.repositories.gold_ledger_repository import GoldLedgerRepository
from chatapi.repositories.room_repository import RoomRepository, _is_membership_violation
from chatapi.repositories.user_repository import UserRepository


class TestUserRepository:
    """잔액 저장소 테스트"""

    def test_adjust_balance_credit_and_debit(self, session_factory, make_user):
        user_id = make_user(gold_credits=100)

        with session_factory() as db:
            repo = UserRepository(db)
            assert repo.adjust_balance(user_id, 50) == 150
            assert repo.adjust_balance(user_id, -150) == 0
            db.commit()

        with session_factory() as db:
            assert UserRepository(db).get_balance(user_id) == 0

    def test_adjust_balance_never_goes_negative(self, session_factory, make_user):
        """잔액보다 큰 차감은 거절되고 잔액은 그대로"""
        user_id = make_user(gold_credits=30)

        with session_factory() as db:
            repo = UserRepository(db)
            with pytest.raises(InsufficientFundsError) as exc_info:
                repo.adjust_balance(user_id, -31)
            assert exc_info.value.details == {"required": 31, "available": 30}
            assert repo.get_balance(user_id) == 30

    def test_adjust_balance_unknown_user(self, session_factory):
        with session_factory() as db:
            with pytest.raises(NotFoundError):
                UserRepository(db).adjust_balance(999, 10)

    def test_get_required_unknown_user(self, session_factory):
        with session_factory() as db:
            with pytest.raises(NotFoundError) as exc_info:
                UserRepository(db).get_required(7)

        assert exc_info.value.message == "User with id 7 not found"

    def test_total_credits(self, session_factory, make_user):
        make_user(gold_credits=3)
        make_user(gold_credits=4)

        with session_factory() as db:
            repo = UserRepository(db)
            assert repo.total_credits() == 7
            assert repo.count_users() == 2


class TestRoomRepository:
    """방 레지스트리 테스트"""

    def test_create_room_keeps_optional_fields(self, session_factory, make_user):
        owner_id = make_user()

        with session_factory() as db:
            repo = RoomRepository(db)
            free_room = repo.create_room(
                name="free",
                description=None,
                room_type=RoomType.PREMIUM,
                max_participants=None,
                gold_cost=0,
                owner_id=owner_id,
            )
            open_room = repo.create_room(
                name="open",
                description="no limits",
                room_type=RoomType.PUBLIC,
                max_participants=None,
                gold_cost=None,
                owner_id=owner_id,
            )
            db.commit()

        assert free_room.gold_cost == 0
        assert open_room.gold_cost is None
        assert open_room.max_participants is None
        assert open_room.created_at is not None

    def test_conditional_insert_respects_capacity(self, session_factory, make_user, make_room):
        """정원이 찬 방에는 조건부 INSERT 가 아무것도 추가하지 않음"""
        owner_id = make_user()
        first, second = make_user(), make_user()
        room_id = make_room(owner_id, max_participants=1)

        with session_factory() as db:
            repo = RoomRepository(db)
            added = repo.add_participant(
                room_id, first, ParticipantRole.MEMBER, max_participants=1
            )
            rejected = repo.add_participant(
                room_id, second, ParticipantRole.MEMBER, max_participants=1
            )
            db.commit()

            assert added is not None
            assert added.user_id == first
            assert rejected is None
            assert repo.count_participants(room_id) == 1

    def test_unique_membership(self, session_factory, make_user, make_room):
        owner_id = make_user()
        user_id = make_user()
        room_id = make_room(owner_id, members=[user_id])

        with session_factory() as db:
            with pytest.raises(AlreadyMemberError):
                RoomRepository(db).add_participant(room_id, user_id, ParticipantRole.MEMBER)
            db.rollback()

    def test_unique_membership_with_capacity(self, session_factory, make_user, make_room):
        owner_id = make_user()
        user_id = make_user()
        room_id = make_room(owner_id, max_participants=10, members=[user_id])

        with session_factory() as db:
            with pytest.raises(AlreadyMemberError):
                RoomRepository(db).add_participant(
                    room_id, user_id, ParticipantRole.MEMBER, max_participants=10
                )
            db.rollback()

    def test_is_participant(self, session_factory, make_user, make_room):
        owner_id = make_user()
        member_id = make_user()
        room_id = make_room(owner_id, members=[member_id])

        with session_factory() as db:
            repo = RoomRepository(db)
            assert repo.is_participant(room_id, member_id) is True
            assert repo.is_participant(room_id, owner_id) is False

    def test_get_for_update_unknown_room(self, session_factory):
        with session_factory() as db:
            assert RoomRepository(db).get_for_update(1) is None


class TestGoldLedgerRepository:
    """원장 저장소 테스트"""

    def test_append_and_sum(self, session_factory, make_user):
        user_id = make_user()

        with session_factory() as db:
            repo = GoldLedgerRepository(db)
            repo.append_transaction(user_id, 100, TransactionType.PURCHASE, "Gold purchase: 100 credits")
            repo.append_transaction(
                user_id, -40, TransactionType.SPEND, "Joined premium room: vip", "room_join_1"
            )
            db.commit()

            assert repo.sum_amounts_for_user(user_id) == (60, 2)
            assert repo.sum_all_amounts() == (60, 2)

    def test_sum_for_user_without_entries(self, session_factory, make_user):
        user_id = make_user()

        with session_factory() as db:
            assert GoldLedgerRepository(db).sum_amounts_for_user(user_id) == (0, 0)


class _DriverError(Exception):
    """diag 속성을 가진 드라이버 오류 (psycopg2 형태)"""

    def __init__(self, message, constraint_name=None):
        super().__init__(message)
        self.diag = SimpleNamespace(constraint_name=constraint_name)


class TestMembershipViolation:
    """중복 참여 제약 위반 판별 테스트"""

    def test_unique_constraint_by_name(self):
        error = IntegrityError(
            "INSERT", {}, _DriverError("duplicate key", "uq_room_participants_room_user")
        )

        assert _is_membership_violation(error) is True

    def test_foreign_key_is_not_membership(self):
        """사용자 FK 위반 메시지에 컬럼명이 있어도 중복 참여로 보지 않음"""
        error = IntegrityError(
            "INSERT",
            {},
            _DriverError(
                "insert or update on table room_participants violates foreign key "
                "constraint; Key (user_id)=(99999) is not present",
                "room_participants_user_id_fkey",
            ),
        )

        assert _is_membership_violation(error) is False

    def test_sqlite_message_fallback(self):
        error = IntegrityError(
            "INSERT",
            {},
            Exception(
                "UNIQUE constraint failed: room_participants.room_id, room_participants.user_id"
            ),
        )

        assert _is_membership_violation(error) is True

    def test_sqlite_other_constraint(self):
        error = IntegrityError(
            "INSERT", {}, Exception("FOREIGN KEY constraint failed")
        )

        assert _is_membership_violation(error) is False


class TestDbContext:
    """트랜잭션 컨텍스트 테스트"""

    def test_orm_error_becomes_store_failure(self, session_factory, make_user, snapshot):
        """DBAPI 외 SQLAlchemy 오류도 롤백 후 StoreFailureError"""
        user_id = make_user(gold_credits=100)
        before = snapshot()

        with pytest.raises(StoreFailureError) as exc_info:
            with get_db_context(session_factory) as db:
                UserRepository(db).adjust_balance(user_id, -40)
                raise InvalidRequestError("session misuse")

        assert exc_info.value.status_code == 503
        assert exc_info.value.details == {"reason": "InvalidRequestError"}
        assert snapshot() == before

    def test_api_error_passes_through(self, session_factory, make_user, snapshot):
        user_id = make_user(gold_credits=10)
        before = snapshot()

        with pytest.raises(NotFoundError):
            with get_db_context(session_factory) as db:
                UserRepository(db).adjust_balance(user_id, 5)
                UserRepository(db).get_required(99999)

        assert snapshot() == before
