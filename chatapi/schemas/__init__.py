from .user import User
from .room import (
    RoomCreateRequest,
    RoomJoinRequest,
    RoomResponse,
    RoomParticipantResponse,
)
from .gold import GoldPurchaseRequest, GoldTransactionEntry
