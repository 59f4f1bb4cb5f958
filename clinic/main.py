import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from clinic.core import config
from clinic.database import Base, engine, ensure_scheduling_indexes
from clinic.models import appointment, schedule, user  # noqa: F401
from clinic.routes import appointment_routes, auth_routes, schedule_routes

config.validate_runtime_config()

app = FastAPI(title='Clinic Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_scheduling_indexes()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Clinic Scheduling API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(schedule_routes.router, prefix='/doctors')
app.include_router(appointment_routes.router, prefix='/appointments')
