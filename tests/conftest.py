# /tests/conftest.py

import os

# Settings are read at import time, so the environment must be in place first.
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["TERM_RECONCILE_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["EDUSTACK_SECURE_HEADER_KEY"] = "test-secure-header-key"

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edustack.core.db import get_db
from edustack.core.security import password_manager, token_manager
from edustack.main import app
from edustack.models import (
    Base,
    AcademicSession,
    AcademicTerm,
    Class,
    School,
    SchoolMember,
    Section,
    Student,
    User,
    UserRole,
)

TODAY = date.today()

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db():
    """
    A fresh schema for every test. All sessions share the single
    in-memory connection, so rows committed here are visible to the API.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """TestClient without the lifespan: tables come from the db fixture and no scheduler runs."""
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------- factories ----------

@pytest.fixture
def make_school(db):
    def _make(name="Greenfield Academy", is_active=True):
        school = School(name=name, email="office@greenfield.ac", is_active=is_active)
        db.add(school)
        db.commit()
        return school
    return _make


@pytest.fixture
def make_class(db):
    def _make(school, label="JSS 1", sections=("A", "B")):
        class_obj = Class(school_id=school.id, label=label)
        class_obj.sections = [Section(label=s) for s in sections]
        db.add(class_obj)
        db.commit()
        return class_obj
    return _make


@pytest.fixture
def make_session(db):
    """
    Create a session whose single term covers today unless term dates are given.
    """
    def _make(label, start, end, is_active=False, term_start=None, term_end=None, term_active=None):
        term_start = term_start or start
        term_end = term_end or end
        term = AcademicTerm(label="First Term", start_date=term_start, end_date=term_end)
        term.is_active = term.covers(TODAY) if term_active is None else term_active
        academic_session = AcademicSession(label=label, start_date=start, end_date=end, is_active=is_active)
        academic_session.terms = [term]
        db.add(academic_session)
        db.commit()
        return academic_session
    return _make


@pytest.fixture
def make_user(db):
    def _make(username, school=None, role=None, is_super_admin=False, password="password123"):
        user = User(
            email=f"{username}@edustack.io",
            username=username,
            password_hash=password_manager.hash_password(password),
            is_super_admin=is_super_admin,
            is_active=True,
        )
        if school is not None and role is not None:
            user.memberships.append(SchoolMember(school_id=school.id, role=UserRole(role).value))
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_student(db):
    counter = {"n": 1000}

    def _make(school, name="Ada Obi"):
        counter["n"] += 1
        username = f"student{counter['n']}"
        user = User(
            email=f"{username}@edustack.io",
            username=username,
            password_hash="not-a-real-hash",
            is_active=True,
        )
        user.memberships.append(SchoolMember(school_id=school.id, role=UserRole.STUDENT.value))
        user.student = Student(name=name, admission_number=counter["n"])
        db.add(user)
        db.commit()
        return user.student
    return _make


@pytest.fixture
def auth_header():
    def _make(user):
        return {"Authorization": f"Bearer {token_manager.create_access_token(user.id)}"}
    return _make


@pytest.fixture
def last_year():
    return TODAY - timedelta(days=565), TODAY - timedelta(days=200)


@pytest.fixture
def this_year():
    return TODAY - timedelta(days=100), TODAY + timedelta(days=200)
