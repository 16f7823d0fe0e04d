import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from chatapi.core.exceptions import StoreFailureError

logger = logging.getLogger(__name__)


@contextmanager
def get_db_context(session_factory: sessionmaker) -> Iterator[Session]:
    """컨텍스트 매니저를 사용한 데이터베이스 세션 관리

    블록 전체가 하나의 트랜잭션입니다. 정상 종료 시 커밋, 예외 발생 시 롤백하므로
    블록 안의 잔액 변경/원장 기록/방 생성/참여자 추가는 모두 반영되거나 모두 취소됩니다.
    드라이버 수준 오류(타임아웃, 연결 끊김, 직렬화 실패)는 StoreFailureError 로 변환됩니다.
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction rolled back on store error: {e.__class__.__name__}: {e}")
        raise StoreFailureError(details={"reason": e.__class__.__name__}) from e
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
