# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .room_repository import RoomRepository
from .gold_ledger_repository import GoldLedgerRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "RoomRepository",
    "GoldLedgerRepository",
]
