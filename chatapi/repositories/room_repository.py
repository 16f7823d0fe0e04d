"""
채팅방 리포지토리 (Room Registry)

방 레코드와 참여자 명단을 관리합니다.

동시성:
- get_for_update 는 방 행에 SELECT ... FOR UPDATE 잠금을 걸어 같은 방에 대한
  참여 처리를 트랜잭션 종료까지 직렬화합니다.
- add_participant 는 정원이 있는 방에 대해 "현재 인원 < 정원" 조건을 같은 INSERT 문
  안에서 다시 검사하는 조건부 INSERT 를 사용합니다.
- (room_id, user_id) 유니크 제약이 중복 참여를 최종적으로 차단합니다.
"""

from typing import List, Optional

from sqlalchemy import BigInteger, String, and_, func, insert, literal, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chatapi.core.exceptions import AlreadyMemberError
from chatapi.models.room import ParticipantRole, Room as RoomModel
from chatapi.models.room import RoomParticipant as RoomParticipantModel
from chatapi.models.room import RoomType
from chatapi.repositories.base import BaseRepository
from chatapi.schemas.room import RoomParticipantResponse, RoomResponse

_MEMBERSHIP_CONSTRAINT = "uq_room_participants_room_user"
# SQLite 는 제약 이름 대신 컬럼 목록으로 보고함
_SQLITE_MEMBERSHIP_MARKER = "room_participants.room_id, room_participants.user_id"


def _is_membership_violation(error: IntegrityError) -> bool:
    diag = getattr(error.orig, "diag", None)
    if diag is not None:
        return getattr(diag, "constraint_name", None) == _MEMBERSHIP_CONSTRAINT
    return _SQLITE_MEMBERSHIP_MARKER in str(error.orig)


class RoomRepository(BaseRepository[RoomModel, RoomResponse]):
    def __init__(self, db: Session):
        super().__init__(RoomModel, RoomResponse, db)

    def get_for_update(self, room_id: int) -> Optional[RoomResponse]:
        """방 조회 + 행 잠금 (트랜잭션 종료 시 해제)"""
        model_instance = (
            self.db.query(self.model_class)
            .filter(self.model_class.id == room_id)
            .with_for_update(nowait=False)
            .first()
        )
        return self._to_schema(model_instance)

    def create_room(
        self,
        name: str,
        description: Optional[str],
        room_type: RoomType,
        max_participants: Optional[int],
        gold_cost: Optional[int],
        owner_id: int,
    ) -> RoomResponse:
        return self.create(
            name=name,
            description=description,
            room_type=room_type.value,
            max_participants=max_participants,
            gold_cost=gold_cost,
            owner_id=owner_id,
            is_active=True,
        )

    def is_participant(self, room_id: int, user_id: int) -> bool:
        return (
            self.db.query(RoomParticipantModel.id)
            .filter(
                and_(
                    RoomParticipantModel.room_id == room_id,
                    RoomParticipantModel.user_id == user_id,
                )
            )
            .first()
            is not None
        )

    def count_participants(self, room_id: int) -> int:
        return (
            self.db.query(func.count(RoomParticipantModel.id))
            .filter(RoomParticipantModel.room_id == room_id)
            .scalar()
            or 0
        )

    def get_participant(
        self, room_id: int, user_id: int
    ) -> Optional[RoomParticipantResponse]:
        instance = (
            self.db.query(RoomParticipantModel)
            .filter(
                and_(
                    RoomParticipantModel.room_id == room_id,
                    RoomParticipantModel.user_id == user_id,
                )
            )
            .first()
        )
        if instance is None:
            return None
        return RoomParticipantResponse.model_validate(instance)

    def add_participant(
        self,
        room_id: int,
        user_id: int,
        role: ParticipantRole,
        max_participants: Optional[int] = None,
    ) -> Optional[RoomParticipantResponse]:
        """참여자 추가

        max_participants 가 있으면 정원을 같은 문장 안에서 재검증하며,
        정원이 찬 경우 아무것도 추가하지 않고 None 을 반환합니다.

        Raises:
            AlreadyMemberError: (room_id, user_id) 유니크 제약 위반
        """
        try:
            if max_participants is None:
                self.db.add(
                    RoomParticipantModel(
                        room_id=room_id, user_id=user_id, participant_role=role.value
                    )
                )
                self.db.flush()
            else:
                roster_size = (
                    select(func.count(RoomParticipantModel.id))
                    .where(RoomParticipantModel.room_id == room_id)
                    .scalar_subquery()
                )
                result = self.db.execute(
                    insert(RoomParticipantModel.__table__).from_select(
                        ["room_id", "user_id", "participant_role"],
                        select(
                            literal(room_id, BigInteger),
                            literal(user_id, BigInteger),
                            literal(role.value, String),
                        ).where(roster_size < max_participants),
                    )
                )
                if result.rowcount == 0:
                    return None
        except IntegrityError as e:
            if _is_membership_violation(e):
                raise AlreadyMemberError(
                    details={"room_id": room_id, "user_id": user_id}
                ) from e
            raise

        return self.get_participant(room_id, user_id)

    def list_visible_rooms(self, user_id: Optional[int] = None) -> List[RoomResponse]:
        """사용자에게 보이는 활성 방 목록

        - 비로그인: public 방만
        - 로그인: public, premium 방 + 본인이 참여 중인 private 방
        """
        query = self.db.query(self.model_class).filter(self.model_class.is_active.is_(True))

        if user_id is None:
            query = query.filter(self.model_class.room_type == RoomType.PUBLIC.value)
        else:
            joined_room_ids = select(RoomParticipantModel.room_id).where(
                RoomParticipantModel.user_id == user_id
            )
            query = query.filter(
                or_(
                    self.model_class.room_type.in_(
                        [RoomType.PUBLIC.value, RoomType.PREMIUM.value]
                    ),
                    and_(
                        self.model_class.room_type == RoomType.PRIVATE.value,
                        self.model_class.id.in_(joined_room_ids),
                    ),
                )
            )

        return [
            self._to_schema(instance)
            for instance in query.order_by(self.model_class.id.asc()).all()
        ]
