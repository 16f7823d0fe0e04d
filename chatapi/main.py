import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from chatapi import containers
from chatapi.config import Settings
from chatapi.core.exception_handlers import register_exception_handlers
from chatapi.core.logging_middleware import LoggingMiddleware
from chatapi.logging_config import setup_logging
from chatapi.routers import gold_router, health_router, room_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    load_dotenv("chatapi/.env")
    settings = Settings()

    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
    )
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    @app.get("/")
    def hello() -> dict:
        return {"message": f"{settings.APP_NAME} is running"}

    app.include_router(health_router.router)
    app.include_router(room_router.router, prefix=settings.API_V1_STR)
    app.include_router(gold_router.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
