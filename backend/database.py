from threading import Lock
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


Base = declarative_base()

_schema_lock = Lock()


class Database:
    """Storage handle owned by the process.

    Opened once at startup and disposed at shutdown. Each request works in
    its own session obtained through ``session()``.
    """

    def __init__(self, url: str, **engine_options):
        self.url = url
        self.engine_options = engine_options
        self.engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._schema_checked = False

    def open(self) -> 'Database':
        if self.engine is not None:
            return self

        options = dict(self.engine_options)
        if self.url.startswith('sqlite'):
            options.setdefault('connect_args', {'check_same_thread': False})
            if ':memory:' in self.url or self.url in {'sqlite://', 'sqlite:///'}:
                options.setdefault('poolclass', StaticPool)

        self.engine = create_engine(self.url, **options)
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
        )
        return self

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self._session_factory = None
        self._schema_checked = False

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError('Database is not open.')
        return self._session_factory()

    def create_schema(self) -> None:
        # Model modules register their tables on Base when imported.
        from backend.models import appointment, patient, provider, slot, user  # noqa: F401

        if self.engine is None:
            raise RuntimeError('Database is not open.')

        if self._schema_checked:
            return

        with _schema_lock:
            if self._schema_checked:
                return
            Base.metadata.create_all(bind=self.engine)
            ensure_slot_schema(self.engine)
            ensure_appointment_schema(self.engine)
            self._schema_checked = True


def ensure_slot_schema(engine: Engine) -> None:
    inspector = inspect(engine)

    if 'provider_slots' not in inspector.get_table_names():
        return

    with engine.begin() as connection:
        # Tables created before the booking index existed do not get it from create_all.
        connection.execute(
            text(
                'CREATE UNIQUE INDEX IF NOT EXISTS uq_provider_slots_booked_start '
                'ON provider_slots(provider_id, start_time) WHERE is_booked'
            )
        )
        connection.execute(
            text('CREATE INDEX IF NOT EXISTS idx_provider_slots_provider_start ON provider_slots(provider_id, start_time)')
        )


def ensure_appointment_schema(engine: Engine) -> None:
    inspector = inspect(engine)

    if 'appointments' not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
    migration_steps = [
        ('reason', 'ALTER TABLE appointments ADD COLUMN reason VARCHAR'),
        ('created_at', 'ALTER TABLE appointments ADD COLUMN created_at TIMESTAMP'),
    ]

    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                connection.execute(text(statement))
        connection.execute(
            text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_created ON appointments(patient_id, created_at)')
        )
        connection.execute(
            text('CREATE INDEX IF NOT EXISTS idx_appointments_provider_created ON appointments(provider_id, created_at)')
        )


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
