from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clientpulse.core.db import Base, get_db
from clientpulse.core.security import hash_password
from clientpulse.main import app
from clientpulse.models import User


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    owner = User(email="owner@test.local", first_name="Olive", last_name="Owner", password_hash=hash_password("pass1234"))
    other = User(email="viewer@test.local", first_name="Vic", password_hash=hash_password("pass1234"))
    db.add_all([owner, other])
    db.commit()
    db.close()

    def override_get_db():
        test_db = TestingSessionLocal()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.testing_sessionmaker = TestingSessionLocal

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
