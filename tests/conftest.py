from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine.base import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session
from testcontainers.postgres import PostgresContainer

from picshelf.db import Base, Database
from picshelf.image_service import ImageService, ServiceSettings
from picshelf.repositories.image_repository import ImageRepository
from tests.helpers import InMemoryObjectStore

SQLITE_MEMORY_URL = "sqlite+pysqlite:///:memory:"
POSTGRES_IMAGE = "postgres:17-alpine"


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer]:
    """PostgreSQL container shared by the whole test session."""
    with PostgresContainer(image=POSTGRES_IMAGE, driver="psycopg") as container:
        yield container


@pytest.fixture(scope="session")
def pg_engine(postgres_container: PostgresContainer) -> Generator[Engine]:
    import picshelf.models.image  # noqa: F401

    engine = create_engine(postgres_container.get_connection_url())
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def pg_session(pg_engine: Engine) -> Generator[Session]:
    """Session on PostgreSQL whose commits are undone after the test."""
    connection = pg_engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection, join_transaction_mode="create_savepoint")()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def pg_repo(pg_session: Session) -> ImageRepository:
    return ImageRepository(pg_session)


@pytest.fixture(scope="function")
def database() -> Generator[Database]:
    """Fresh in-memory database with the images table per test."""
    db = Database(SQLITE_MEMORY_URL)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture(scope="function")
def db_session(database: Database) -> Generator[Session]:
    with database.session() as session:
        yield session


@pytest.fixture(scope="function")
def repo(db_session: Session) -> ImageRepository:
    return ImageRepository(db_session)


@pytest.fixture(scope="function")
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture(scope="function")
def service_settings() -> ServiceSettings:
    return ServiceSettings(rollback_on_metadata_failure=True, upload_prefix="uploads", max_file_size=1024 * 1024)


@pytest.fixture(scope="function")
def service(repo: ImageRepository, object_store: InMemoryObjectStore, service_settings: ServiceSettings) -> ImageService:
    return ImageService(repo, object_store, service_settings)


@pytest.fixture(scope="function")
def client(database: Database, object_store: InMemoryObjectStore, service_settings: ServiceSettings) -> Generator[TestClient]:
    """Test client for an app wired to the in-memory stores."""
    from picshelf.main import create_app

    app = create_app(database=database, s3_client=object_store, service_settings=service_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def image_payload() -> dict[str, str]:
    return {"title": "Sunset", "description": "Over the harbour"}


@pytest.fixture(scope="function")
def uploaded_image(client: TestClient, image_payload: dict[str, str]) -> dict:
    """An image uploaded through the API; returns the response's image."""
    files = {"file": ("sunset.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")}
    response = client.post("/api/images", data=image_payload, files=files)
    assert response.status_code == 201
    return response.json()["image"]
