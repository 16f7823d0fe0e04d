import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from chatapi.config import settings
from chatapi.database.connection import create_db_engine
from chatapi.models import gold, room, user  # noqa: F401  테이블 등록
from chatapi.models.base import Base


def init_db():
    """데이터베이스 초기화"""
    engine = create_db_engine(settings)
    try:
        # 스키마 생성 (PostgreSQL)
        if engine.dialect.name == "postgresql":
            with engine.connect() as conn:
                conn.execute(
                    text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
                )
                conn.commit()

        # 테이블 생성
        Base.metadata.create_all(bind=engine)
        print(f"Database initialized successfully: {engine.url.render_as_string()}")

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise
    finally:
        engine.dispose()


if __name__ == "__main__":
    init_db()
