import os
import tempfile

# Must be set before catalog_service configures its logger
os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="catalog-logs-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from catalog_service.application.category_service import CategoryService  # noqa: E402
from catalog_service.application.color_service import ColorService  # noqa: E402
from catalog_service.application.media_service import MediaService  # noqa: E402
from catalog_service.application.product_service import ProductService  # noqa: E402
from catalog_service.config.config import ClerkConfig  # noqa: E402
from catalog_service.infrastructure.clerk.clerk import (  # noqa: E402
    AuthenticatedUser,
    ClerkAuthService,
    get_current_user,
)
from catalog_service.infrastructure.database.session import Database  # noqa: E402
from catalog_service.main import create_app  # noqa: E402
from factories import InMemoryStorage  # noqa: E402


@pytest.fixture
def database():
    db = Database(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.create_tables()
    yield db
    db.drop_tables()
    db.dispose()


@pytest.fixture
def session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def media_service(session, storage):
    return MediaService(session=session, storage=storage, max_workers=2)


@pytest.fixture
def category_service(session, media_service):
    return CategoryService(session=session, media_service=media_service)


@pytest.fixture
def product_service(session, media_service):
    return ProductService(session=session, media_service=media_service)


@pytest.fixture
def color_service(session):
    return ColorService(session=session)


@pytest.fixture
def current_user():
    return AuthenticatedUser(id="user_123", email="admin@example.com")


@pytest.fixture
def app(database, storage):
    auth_service = ClerkAuthService(ClerkConfig(secret_key="sk_test", jwt_key="unused"))
    return create_app(database=database, storage=storage, auth_service=auth_service)


@pytest.fixture
def client(app, current_user):
    app.dependency_overrides[get_current_user] = lambda: current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(app):
    with TestClient(app) as test_client:
        yield test_client
