"""
Shared pytest fixtures.

Every test gets its own SQLite file database under ``tmp_path``, a throwaway
token key and a fixed clock so "future" and "past" are deterministic.
"""

import secrets
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from clinic.core.locks import KeyedLocks
from clinic.core.security import TokenAuthority, get_password_hash
from clinic.database import build_engine, get_db, init_db
from clinic.main import create_app
from clinic.models.user import Admin, Doctor, Patient
from clinic.repository import ClinicRepository
from clinic.services.booking import BookingCoordinator

NOW = datetime(2025, 5, 1, 8, 0)
TEST_ROUNDS = 4


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'clinic.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repository(db_session):
    return ClinicRepository(db_session)


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def token_authority():
    return TokenAuthority(secrets.token_hex(32))


@pytest.fixture
def locks():
    return KeyedLocks()


@pytest.fixture
def booking(repository, token_authority, locks, clock):
    return BookingCoordinator(repository, token_authority, locks, clock=clock)


# ============================================================================
# TEST DATA
# ============================================================================


@pytest.fixture
def doctor(repository):
    return repository.save_doctor(
        Doctor(
            name="Alice Martin",
            email="alice@clinic.example.com",
            specialty="Cardiology",
            phone="0612345678",
            available_times=["09:00-10:00", "10:00-11:00"],
            hashed_password=get_password_hash("doctorpass", rounds=TEST_ROUNDS),
        )
    )


@pytest.fixture
def other_doctor(repository):
    return repository.save_doctor(
        Doctor(
            name="Bruno Keller",
            email="bruno@clinic.example.com",
            specialty="Dermatology",
            phone="0698765432",
            available_times=["14:00-15:00", "15:00-16:00"],
            hashed_password=get_password_hash("doctorpass", rounds=TEST_ROUNDS),
        )
    )


@pytest.fixture
def patient(repository):
    return repository.save_patient(
        Patient(
            name="Paula Jones",
            email="paula@example.com",
            phone="0711111111",
            address="1 Main Street",
            hashed_password=get_password_hash("patientpass", rounds=TEST_ROUNDS),
        )
    )


@pytest.fixture
def other_patient(repository):
    return repository.save_patient(
        Patient(
            name="Omar Said",
            email="omar@example.com",
            phone="0722222222",
            address="2 High Street",
            hashed_password=get_password_hash("patientpass", rounds=TEST_ROUNDS),
        )
    )


@pytest.fixture
def admin(repository):
    return repository.save_admin(
        Admin(username="root", hashed_password=get_password_hash("adminpass", rounds=TEST_ROUNDS))
    )


@pytest.fixture
def doctor_token(token_authority, doctor):
    return token_authority.issue(doctor.email)


@pytest.fixture
def patient_token(token_authority, patient):
    return token_authority.issue(patient.email)


@pytest.fixture
def admin_token(token_authority, admin):
    return token_authority.issue(admin.username)


# ============================================================================
# API FIXTURES
# ============================================================================


@pytest.fixture
def app(session_factory, token_authority, clock):
    app = create_app(token_authority=token_authority, clock=clock, bcrypt_rounds=TEST_ROUNDS)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    # Not used as a context manager: the lifespan would create tables on the default engine
    return TestClient(app)
