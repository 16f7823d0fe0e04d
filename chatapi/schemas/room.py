from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from chatapi.models.room import ParticipantRole, RoomType


class RoomCreateRequest(BaseModel):
    """채팅방 생성 요청

    max_participants / gold_cost 는 미지정(None)과 0 을 구분합니다.
    gold_cost 는 premium 방에서만 의미가 있습니다.
    """

    name: str = Field(..., min_length=1, max_length=100, description="방 이름")
    description: Optional[str] = Field(None, description="방 설명")
    room_type: RoomType = Field(..., description="방 유형 (public, private, premium)")
    max_participants: Optional[int] = Field(None, gt=0, description="최대 참여 인원")
    gold_cost: Optional[int] = Field(None, ge=0, description="입장/생성 골드 비용")


class RoomJoinRequest(BaseModel):
    """채팅방 참여 요청"""

    room_id: int = Field(..., gt=0, description="방 ID")


class RoomResponse(BaseModel):
    """채팅방 응답"""

    id: int = Field(..., description="방 ID")
    name: str = Field(..., description="방 이름")
    description: Optional[str] = Field(None, description="방 설명")
    room_type: RoomType = Field(..., description="방 유형")
    max_participants: Optional[int] = Field(None, description="최대 참여 인원")
    gold_cost: Optional[int] = Field(None, description="골드 비용")
    owner_id: int = Field(..., description="방장 사용자 ID")
    is_active: bool = Field(..., description="활성 여부")
    created_at: datetime = Field(..., description="생성 시간")
    updated_at: datetime = Field(..., description="수정 시간")

    class Config:
        from_attributes = True


class RoomDetailResponse(RoomResponse):
    """채팅방 상세 응답 - 현재 참여 인원 포함"""

    participant_count: int = Field(..., ge=0, description="현재 참여 인원")


class RoomListResponse(BaseModel):
    """채팅방 목록 응답"""

    rooms: List[RoomResponse] = Field(..., description="방 목록")
    count: int = Field(..., description="방 개수")


class RoomParticipantResponse(BaseModel):
    """채팅방 참여자 응답"""

    id: int = Field(..., description="참여 ID")
    room_id: int = Field(..., description="방 ID")
    user_id: int = Field(..., description="사용자 ID")
    participant_role: ParticipantRole = Field(..., description="참여자 역할")
    joined_at: datetime = Field(..., description="참여 시간")
    last_seen_at: Optional[datetime] = Field(None, description="마지막 활동 시간")

    class Config:
        from_attributes = True
