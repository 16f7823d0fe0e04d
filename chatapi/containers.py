from dependency_injector import containers, providers

from chatapi.config import Settings
from chatapi.database.connection import create_db_engine, create_session_factory
from chatapi.services.gold_service import GoldService
from chatapi.services.room_service import RoomService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class DatabaseModule(containers.DeclarativeContainer):
    """Database engine and session factory."""

    config = providers.DependenciesContainer()

    engine = providers.Singleton(create_db_engine, settings=config.config)
    session_factory = providers.Singleton(create_session_factory, engine=engine)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    database = providers.DependenciesContainer()

    room_service = providers.Factory(
        RoomService, session_factory=database.session_factory, settings=config.config
    )
    gold_service = providers.Factory(
        GoldService, session_factory=database.session_factory, settings=config.config
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "chatapi.routers.health_router",
            "chatapi.routers.room_router",
            "chatapi.routers.gold_router",
        ],
    )

    config = providers.Container(ConfigModule)
    database = providers.Container(DatabaseModule, config=config)
    services = providers.Container(ServiceModule, config=config, database=database)
