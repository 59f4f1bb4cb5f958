from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic.core import config


_connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, connect_args=_connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduling_indexes_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_scheduling_indexes() -> None:
    global _scheduling_indexes_checked

    if _scheduling_indexes_checked:
        return

    with _schema_lock:
        if _scheduling_indexes_checked:
            return

        table_names = set(inspect(engine).get_table_names())
        index_statements = []

        if 'appointments' in table_names:
            index_statements.append(
                'CREATE INDEX IF NOT EXISTS idx_appointments_doctor_date '
                'ON appointments(doctor_id, appointment_date)'
            )
        if 'doctor_schedules' in table_names:
            index_statements.append(
                'CREATE INDEX IF NOT EXISTS idx_doctor_schedules_doctor_day '
                'ON doctor_schedules(doctor_id, day_of_week, is_active)'
            )

        with engine.begin() as connection:
            for statement in index_statements:
                connection.execute(text(statement))

        _scheduling_indexes_checked = True
