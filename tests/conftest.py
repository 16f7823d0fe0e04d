import pytest
from sqlalchemy.orm import sessionmaker

from chatapi.config import Settings
from chatapi.database.connection import create_db_engine, create_session_factory
from chatapi.models.base import Base
from chatapi.models.gold import GoldTransaction, TransactionType
from chatapi.models.room import ParticipantRole, Room, RoomParticipant, RoomType
from chatapi.models.user import User


@pytest.fixture
def settings():
    """인메모리 SQLite 설정"""
    return Settings(DATABASE_URL="sqlite://", LOG_LEVEL="WARNING")


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return create_session_factory(engine)


@pytest.fixture
def make_user(session_factory):
    """골드 잔액을 가진 사용자 생성

    초기 잔액은 bonus 원장 항목으로 함께 기록되어 잔액과 원장 합계가 일치합니다.
    """
    counter = {"n": 0}

    def _make_user(gold_credits: int = 0, role: str = "user") -> int:
        counter["n"] += 1
        n = counter["n"]
        with session_factory() as db:
            user = User(
                username=f"user{n}",
                email=f"user{n}@example.com",
                gold_credits=gold_credits,
                role=role,
            )
            db.add(user)
            db.flush()
            if gold_credits:
                db.add(
                    GoldTransaction(
                        user_id=user.id,
                        amount=gold_credits,
                        transaction_type=TransactionType.BONUS.value,
                        description="Initial credits",
                    )
                )
            db.commit()
            return user.id

    return _make_user


@pytest.fixture
def make_room(session_factory):
    """방 레코드를 직접 생성 (과금 없이)"""

    def _make_room(
        owner_id: int,
        room_type: RoomType = RoomType.PUBLIC,
        max_participants=None,
        gold_cost=None,
        is_active: bool = True,
        name: str = "test room",
        members=(),
    ) -> int:
        with session_factory() as db:
            room = Room(
                name=name,
                room_type=room_type.value,
                max_participants=max_participants,
                gold_cost=gold_cost,
                owner_id=owner_id,
                is_active=is_active,
            )
            db.add(room)
            db.flush()
            for member_id in members:
                db.add(
                    RoomParticipant(
                        room_id=room.id,
                        user_id=member_id,
                        participant_role=ParticipantRole.MEMBER.value,
                    )
                )
            db.commit()
            return room.id

    return _make_room


@pytest.fixture
def snapshot(session_factory):
    """잔액/원장/방/참여자 테이블 상태 스냅샷"""

    def _snapshot():
        with session_factory() as db:
            return {
                "balances": sorted(
                    (u.id, u.gold_credits) for u in db.query(User).all()
                ),
                "ledger": sorted(
                    (t.id, t.user_id, t.amount, t.transaction_type)
                    for t in db.query(GoldTransaction).all()
                ),
                "rooms": sorted(r.id for r in db.query(Room).all()),
                "participants": sorted(
                    (p.room_id, p.user_id) for p in db.query(RoomParticipant).all()
                ),
            }

    return _snapshot
