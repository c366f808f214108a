# ===================================
# tests/conftest.py
# ===================================
import os
import tempfile

# Configuration de test, avant tout import de l'application (settings en cache)
_TEST_DIR = tempfile.mkdtemp(prefix="ratemysoft-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["REVIEW_AUTO_PUBLISH"] = "true"

import itertools  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.core.security import create_access_token, scopes_for_user  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models.user import UserRole  # noqa: E402
from app.repositories.user_repo import create_user  # noqa: E402
from app.schemas.product import CompanyCreate, ProductCreate  # noqa: E402
from app.schemas.user import UserCreate  # noqa: E402
from app.services.product_service import ProductService  # noqa: E402

_sequence = itertools.count(1)


@pytest.fixture(autouse=True)
def reset_database():
    """Tables recréées pour chaque test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(role: UserRole = UserRole.USER, password: str = "password123"):
        n = next(_sequence)
        return create_user(
            db,
            UserCreate(email=f"user{n}@ratemysoft.io", handle=f"user{n}", password=password),
            role=role,
        )
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN)


@pytest.fixture
def company(db):
    return ProductService(db).create_company(CompanyCreate(name="Acme Cloud"))


@pytest.fixture
def make_product(db, company):
    def _make_product(name: str = None):
        n = next(_sequence)
        return ProductService(db).create_product(
            ProductCreate(company_id=company.id, name=name or f"Produit {n}")
        )
    return _make_product


@pytest.fixture
def product(make_product):
    return make_product("Acme Deploy")


@pytest.fixture
def client():
    # Sans bloc `with` : le cycle de vie (scheduler, init_db) n'est pas déclenché
    return TestClient(fastapi_app)


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token(subject=user.id, scopes=scopes_for_user(user))
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers
