"""
채팅방 API 라우터

- GET /rooms: 접근 가능한 방 목록 (비로그인 시 public 방만)
- POST /rooms: 방 생성 (premium 방은 생성 비용 차감)
- GET /rooms/{room_id}: 방 상세 (현재 참여 인원 포함)
- POST /rooms/join: 방 참여 (premium 방은 입장 비용 차감)

오류 응답은 BaseAPIException 핸들러가 {"success": false, "error": {...}} 형태로 반환합니다.
"""

import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, status

from chatapi.containers import Container
from chatapi.core.security import (
    TokenPayload,
    get_current_user,
    get_current_user_optional,
)
from chatapi.schemas.room import (
    RoomCreateRequest,
    RoomDetailResponse,
    RoomJoinRequest,
    RoomListResponse,
    RoomParticipantResponse,
    RoomResponse,
)
from chatapi.services.room_service import RoomService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("", response_model=RoomListResponse)
@inject
def list_rooms(
    current_user: Optional[TokenPayload] = Depends(get_current_user_optional),
    room_service: RoomService = Depends(Provide[Container.services.room_service]),
) -> RoomListResponse:
    """
    방 목록 조회

    인증: 선택 (토큰이 있으면 premium 방과 참여 중인 private 방도 포함)
    """
    user_id = current_user.user_id if current_user else None
    rooms = room_service.list_rooms(user_id)
    return RoomListResponse(rooms=rooms, count=len(rooms))


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
@inject
def create_room(
    request: RoomCreateRequest,
    current_user: TokenPayload = Depends(get_current_user),
    room_service: RoomService = Depends(Provide[Container.services.room_service]),
) -> RoomResponse:
    """
    방 생성

    인증 필요: Bearer 토큰

    HTTP Status:
        201: 생성 완료
        400: 골드 부족 (premium 방)
        404: 사용자 없음
        503: 저장소 오류 (재시도 가능)
    """
    return room_service.create_room(current_user.user_id, request)


@router.post("/join", response_model=RoomParticipantResponse)
@inject
def join_room(
    request: RoomJoinRequest,
    current_user: TokenPayload = Depends(get_current_user),
    room_service: RoomService = Depends(Provide[Container.services.room_service]),
) -> RoomParticipantResponse:
    """
    방 참여

    인증 필요: Bearer 토큰

    HTTP Status:
        200: 참여 완료
        400: 골드 부족
        404: 방 또는 사용자 없음
        409: 비활성 방 / 이미 참여 중 / 정원 초과
        503: 저장소 오류 (재시도 가능)
    """
    return room_service.join_room(current_user.user_id, request)


@router.get("/{room_id}", response_model=RoomDetailResponse)
@inject
def get_room(
    room_id: int = Path(..., gt=0, description="방 ID"),
    room_service: RoomService = Depends(Provide[Container.services.room_service]),
) -> RoomDetailResponse:
    """방 상세 조회"""
    return room_service.get_room(room_id)
