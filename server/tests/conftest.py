from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

from collections.abc import Generator
from typing import Callable, Iterable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from afterschool.auth.deps import get_current_user
from afterschool.core.db import Base, engine_options, get_db
from afterschool.main import app
from afterschool.models.staff import StaffProfile
from afterschool.models.student import Student
from afterschool.models.user import User
from afterschool.services.notifications import get_dispatcher

SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(SQLALCHEMY_TEST_URL, poolclass=StaticPool, **engine_options(SQLALCHEMY_TEST_URL))
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def override_get_db() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def authorize(client: TestClient):
    def _apply(user: User):
        app.dependency_overrides[get_current_user] = lambda: user

    yield _apply
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    def _make(
        username: str,
        role: str,
        *,
        staff_role: str | None = None,
        permissions: Iterable[str] = (),
        with_profile: bool = True,
    ) -> User:
        user = User(username=username, full_name=username.title(), hashed_password="hash", role=role, is_active=True)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        if role == "staff" and with_profile:
            db_session.add(
                StaffProfile(
                    user_id=user.id,
                    title="Staff",
                    staff_role=staff_role,
                    permissions=list(permissions),
                )
            )
            db_session.commit()
        return user

    return _make


@pytest.fixture()
def admin_user(make_user) -> User:
    return make_user("admin", "admin")


@pytest.fixture()
def site_manager_user(make_user) -> User:
    return make_user("manager", "staff", staff_role="site-manager")


@pytest.fixture()
def ydl_user(make_user) -> User:
    return make_user("ydl", "staff", staff_role="youth-development-lead")


@pytest.fixture()
def coach_user(make_user) -> User:
    return make_user("coach", "staff", staff_role="coach")


@pytest.fixture()
def second_user(make_user) -> User:
    return make_user("second", "staff", staff_role="second-in-command")


@pytest.fixture()
def unprofiled_staff_user(make_user) -> User:
    return make_user("newhire", "staff", with_profile=False)


@pytest.fixture()
def parent_user(make_user) -> User:
    return make_user("parent1", "parent")


@pytest.fixture()
def other_parent_user(make_user) -> User:
    return make_user("parent2", "parent")


def _create_student(session: Session, first_name: str, parent: User | None) -> Student:
    student = Student(
        first_name=first_name,
        last_name="Student",
        grade="3",
        parent_id=parent.id if parent else None,
    )
    session.add(student)
    session.commit()
    session.refresh(student)
    return student


@pytest.fixture()
def student(db_session: Session, parent_user: User) -> Student:
    return _create_student(db_session, "Abel", parent_user)


@pytest.fixture()
def other_student(db_session: Session, other_parent_user: User) -> Student:
    return _create_student(db_session, "Beti", other_parent_user)


class RecordingDispatcher:
    def __init__(self) -> None:
        self.published: list[tuple[str, int, dict]] = []

    def publish(self, entity_type: str, entity_id: int, payload: dict) -> None:
        self.published.append((entity_type, entity_id, payload))


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def api_dispatcher(client: TestClient, dispatcher: RecordingDispatcher) -> Generator[RecordingDispatcher, None, None]:
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield dispatcher
    app.dependency_overrides.pop(get_dispatcher, None)


@pytest.fixture()
def session_factory() -> sessionmaker:
    return TestingSessionLocal
