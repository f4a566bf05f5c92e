import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from opd_backend.core import config
from opd_backend.database import Base, engine, ensure_scheduling_schema
from opd_backend.models import appointment, followup, schedule  # noqa: F401
from opd_backend.routes import appointment_routes, followup_routes, schedule_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='OPD Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_scheduling_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'OPD Scheduling API Running'}


app.include_router(schedule_routes.router, prefix='/opd')
app.include_router(appointment_routes.router, prefix='/opd')
app.include_router(followup_routes.router, prefix='/opd')
