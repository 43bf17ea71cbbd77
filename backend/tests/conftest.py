from datetime import date
from pathlib import Path
import os
import tempfile

import pytest

# point the app at a throwaway database before it is imported
_TMP_DIR = Path(tempfile.mkdtemp(prefix="petclinic-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["ENV"] = "dev"

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, select  # noqa: E402

from petclinic import models, services  # noqa: E402
from petclinic.database import create_db_and_tables, engine  # noqa: E402
from petclinic.main import app  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def reset_db():
    """Ensure a fresh SQLite database for tests."""
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables()
    yield


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def account():
    with Session(engine) as session:
        services.AuthService(session).ensure_account("vet", "secret")
    return "vet", "secret"


@pytest.fixture
def logged_in_client(client, account):
    username, password = account
    r = client.post("/login", data={"username": username, "password": password}, follow_redirects=False)
    assert r.status_code == 302
    return client


@pytest.fixture
def owner_with_pet():
    """Create an owner with one pet and return `(owner_id, pet_id)`."""
    with Session(engine) as session:
        owner = models.Owner(first_name="George", last_name="Franklin", address="110 W. Liberty St.", city="Madison")
        pet = models.Pet(name="Leo", birth_date=date(2010, 9, 7))
        owner.pets.append(pet)
        session.add(owner)
        session.commit()
        session.refresh(owner)
        session.refresh(pet)
        return owner.id, pet.id


def stored_visits(pet_id):
    with Session(engine) as session:
        return session.exec(select(models.Visit).where(models.Visit.pet_id == pet_id)).all()
