import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic.database import Base  # noqa: E402
from clinic.models.appointment import Appointment  # noqa: E402
from clinic.models.schedule import DoctorSchedule  # noqa: E402
from clinic.models.user import DoctorProfile, PatientProfile, Role, User  # noqa: E402
from clinic.scheduling.ports import CallerIdentity  # noqa: E402

TABLES = [
    User.__table__,
    DoctorProfile.__table__,
    PatientProfile.__table__,
    DoctorSchedule.__table__,
    Appointment.__table__,
]


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def make_user(db_session):
    def _make_user(email: str, role: Role, first_name: str = 'Test', last_name: str = 'User') -> User:
        user = User(email=email, role=role, first_name=first_name, last_name=last_name)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def caller_for():
    def _caller_for(user: User) -> CallerIdentity:
        return CallerIdentity(user_id=user.id, email=user.email, role=user.role)

    return _caller_for


@pytest.fixture
def doctor(make_user):
    return make_user('house@clinic.test', Role.DOCTOR, 'Gregory', 'House')


@pytest.fixture
def other_doctor(make_user):
    return make_user('wilson@clinic.test', Role.DOCTOR, 'James', 'Wilson')


@pytest.fixture
def patient(make_user):
    return make_user('patient@example.test', Role.PATIENT, 'Pat', 'Smith')


@pytest.fixture
def other_patient(make_user):
    return make_user('other@example.test', Role.PATIENT, 'Olive', 'Jones')
