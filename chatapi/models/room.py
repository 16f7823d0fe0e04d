"""
채팅방 데이터 모델

rooms 테이블은 방 정보(유형, 정원, 입장 비용, 활성 여부)를,
room_participants 테이블은 방과 사용자 간의 참여 관계를 저장합니다.
(room_id, user_id) 쌍은 유니크하여 같은 방에 두 번 참여할 수 없습니다.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from chatapi.models.base import Base, BaseModel, BigIntegerId


class RoomType(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    PREMIUM = "premium"


class ParticipantRole(str, Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


class Room(BaseModel):
    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint(
            "room_type IN ('public', 'private', 'premium')", name="ck_rooms_room_type"
        ),
        CheckConstraint(
            "max_participants IS NULL OR max_participants > 0",
            name="ck_rooms_max_participants_positive",
        ),
        CheckConstraint(
            "gold_cost IS NULL OR gold_cost >= 0", name="ck_rooms_gold_cost_non_negative"
        ),
        Index("idx_rooms_type_active", "room_type", "is_active"),
    )

    id: Mapped[int] = mapped_column(BigIntegerId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    room_type: Mapped[str] = mapped_column(
        String(20), default=RoomType.PUBLIC.value, nullable=False
    )
    # NULL = 정원 제한 없음
    max_participants: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # NULL = 비용 미지정, 0 = 무료 프리미엄 방 (둘은 서로 다른 상태)
    gold_cost: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    owner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Room(id={self.id}, name={self.name}, type={self.room_type})>"


class RoomParticipant(Base):
    __tablename__ = "room_participants"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_room_participants_room_user"),
        CheckConstraint(
            "participant_role IN ('member', 'moderator', 'admin')",
            name="ck_room_participants_role",
        ),
        Index("idx_room_participants_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigIntegerId, primary_key=True, autoincrement=True)
    room_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("rooms.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    participant_role: Mapped[str] = mapped_column(
        String(20), default=ParticipantRole.MEMBER.value, nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    # 메시지 활동 시 갱신 (메시징 서비스 담당)
    last_seen_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self):
        return f"<RoomParticipant(room_id={self.room_id}, user_id={self.user_id}, role={self.participant_role})>"
