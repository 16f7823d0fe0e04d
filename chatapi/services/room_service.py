import logging
from typing import List, Optional

from sqlalchemy.orm import Session, sessionmaker

from chatapi.config import Settings
from chatapi.core.exceptions import (
    AlreadyMemberError,
    BaseAPIException,
    InsufficientFundsError,
    NotFoundError,
    RoomFullError,
    RoomInactiveError,
    ValidationError,
)
from chatapi.database.session import get_db_context
from chatapi.models.gold import TransactionType
from chatapi.models.room import ParticipantRole, RoomType
from chatapi.repositories.gold_ledger_repository import GoldLedgerRepository
from chatapi.repositories.room_repository import RoomRepository
from chatapi.repositories.user_repository import UserRepository
from chatapi.schemas.room import (
    RoomCreateRequest,
    RoomDetailResponse,
    RoomJoinRequest,
    RoomParticipantResponse,
    RoomResponse,
)

logger = logging.getLogger(__name__)


class RoomService:
    """채팅방 생성/참여 비즈니스 로직을 담당하는 서비스

    각 공개 메서드는 get_db_context 하나로 감싸진 단일 트랜잭션입니다.
    잔액 차감, 원장 기록, 방 생성, 참여자 추가는 모두 반영되거나 모두 취소됩니다.
    """

    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    def _charge(
        self,
        db: Session,
        user_id: int,
        cost: int,
        description: str,
        reference_id: Optional[str] = None,
    ) -> int:
        """골드 차감 + spend 원장 기록, 차감 후 잔액 반환"""
        new_balance = UserRepository(db).adjust_balance(user_id, -cost)
        GoldLedgerRepository(db).append_transaction(
            user_id=user_id,
            amount=-cost,
            transaction_type=TransactionType.SPEND,
            description=description,
            reference_id=reference_id,
        )
        return new_balance

    def create_room(self, user_id: int, request: RoomCreateRequest) -> RoomResponse:
        """채팅방 생성

        Args:
            user_id: 방을 만드는 사용자 ID
            request: 방 생성 요청

        Returns:
            RoomResponse: 생성된 방

        Raises:
            ValidationError: 방 이름이 MAX_ROOM_NAME_LENGTH 를 넘는 경우
            NotFoundError: 사용자가 없는 경우
            InsufficientFundsError: premium 방 생성 비용보다 잔액이 적은 경우
        """
        if len(request.name) > self.settings.MAX_ROOM_NAME_LENGTH:
            raise ValidationError(
                f"Room name must be at most {self.settings.MAX_ROOM_NAME_LENGTH} characters",
                details={"max_length": self.settings.MAX_ROOM_NAME_LENGTH},
            )

        is_premium = request.room_type == RoomType.PREMIUM
        # public/private 방은 요청에 gold_cost 가 있어도 저장/차감하지 않음
        gold_cost = request.gold_cost if is_premium else None
        charge = gold_cost if gold_cost is not None and gold_cost > 0 else 0

        try:
            with get_db_context(self.session_factory) as db:
                users = UserRepository(db)
                rooms = RoomRepository(db)

                user = users.get_required(user_id)

                if charge > 0:
                    if user.gold_credits < charge:
                        raise InsufficientFundsError(
                            f"Insufficient gold credits. Required: {charge}, Available: {user.gold_credits}",
                            details={"required": charge, "available": user.gold_credits},
                        )
                    self._charge(
                        db,
                        user_id=user_id,
                        cost=charge,
                        description=f"Room creation: {request.name}",
                    )

                room = rooms.create_room(
                    name=request.name,
                    description=request.description,
                    room_type=request.room_type,
                    max_participants=request.max_participants,
                    gold_cost=gold_cost,
                    owner_id=user_id,
                )
                rooms.add_participant(room.id, user_id, ParticipantRole.ADMIN)
        except BaseAPIException as e:
            logger.warning(f"Room creation rejected for user {user_id}: {e.message}")
            raise

        logger.info(
            f"User {user_id} created {room.room_type.value} room {room.id} (charged {charge} gold)"
        )
        return room

    def join_room(
        self, user_id: int, request: RoomJoinRequest
    ) -> RoomParticipantResponse:
        """채팅방 참여

        정원/중복 참여 검사는 골드 차감보다 먼저 수행되므로 거절된 참여는 과금되지 않습니다.

        Raises:
            NotFoundError: 방 또는 사용자가 없는 경우
            RoomInactiveError: 비활성 방
            AlreadyMemberError: 이미 참여 중
            RoomFullError: 정원 초과
            InsufficientFundsError: premium 방 입장 비용보다 잔액이 적은 경우
        """
        room_id = request.room_id

        try:
            with get_db_context(self.session_factory) as db:
                rooms = RoomRepository(db)

                # 방 행 잠금 - 같은 방에 대한 동시 참여를 직렬화
                room = rooms.get_for_update(room_id)
                if room is None:
                    raise NotFoundError(
                        f"Room with id {room_id} not found", details={"room_id": room_id}
                    )

                if not room.is_active:
                    raise RoomInactiveError(details={"room_id": room_id})

                if rooms.is_participant(room_id, user_id):
                    raise AlreadyMemberError(
                        details={"room_id": room_id, "user_id": user_id}
                    )

                if room.max_participants is not None:
                    participant_count = rooms.count_participants(room_id)
                    if participant_count >= room.max_participants:
                        raise RoomFullError(
                            details={
                                "room_id": room_id,
                                "max_participants": room.max_participants,
                            }
                        )

                user = UserRepository(db).get_required(user_id)

                if (
                    room.room_type == RoomType.PREMIUM
                    and room.gold_cost is not None
                    and room.gold_cost > 0
                ):
                    if user.gold_credits < room.gold_cost:
                        raise InsufficientFundsError(
                            f"Insufficient gold credits. Required: {room.gold_cost}, Available: {user.gold_credits}",
                            details={
                                "required": room.gold_cost,
                                "available": user.gold_credits,
                            },
                        )
                    self._charge(
                        db,
                        user_id=user_id,
                        cost=room.gold_cost,
                        description=f"Joined premium room: {room.name}",
                        reference_id=f"room_join_{room.id}",
                    )

                participant = rooms.add_participant(
                    room_id,
                    user_id,
                    ParticipantRole.MEMBER,
                    max_participants=room.max_participants,
                )
                if participant is None:
                    # 조건부 INSERT 가 정원 초과를 감지 - 위의 차감도 함께 롤백됨
                    raise RoomFullError(
                        details={
                            "room_id": room_id,
                            "max_participants": room.max_participants,
                        }
                    )
        except BaseAPIException as e:
            logger.warning(
                f"Join rejected for user {user_id} on room {room_id}: {e.message}"
            )
            raise

        logger.info(f"User {user_id} joined room {room_id}")
        return participant

    def list_rooms(self, user_id: Optional[int] = None) -> List[RoomResponse]:
        """접근 가능한 활성 방 목록 (비로그인 시 public 만)"""
        with get_db_context(self.session_factory) as db:
            rooms = RoomRepository(db).list_visible_rooms(user_id)

        logger.info(f"Listed {len(rooms)} rooms for user {user_id}")
        return rooms

    def get_room(self, room_id: int) -> RoomDetailResponse:
        """방 상세 조회 - 현재 참여 인원 포함"""
        with get_db_context(self.session_factory) as db:
            rooms = RoomRepository(db)
            room = rooms.get_by_id(room_id)
            if room is None:
                raise NotFoundError(
                    f"Room with id {room_id} not found", details={"room_id": room_id}
                )
            participant_count = rooms.count_participants(room_id)

        return RoomDetailResponse(
            **room.model_dump(), participant_count=participant_count
        )
