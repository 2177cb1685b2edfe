import os

import pytest


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "Datahub Test",
        "ENVIRONMENT": "test",
        "AUTO_CREATE_TABLES": "false",
        "DATABASE_URL": "sqlite://",
        "PORTAL02_BASE_URL": "https://www.portal-02.com/api/v1",
        "PORTAL02_API_KEY": "p02_test_key",
        "BACKEND_URL": "https://api.datahub.test/api",
        "BACKGROUND_JOBS_ENABLED": "false",
        "QUEUE_RETRY_BACKOFF_SECONDS": "0",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import datahub.models  # noqa: E402,F401
from datahub.core.database import Base  # noqa: E402
from datahub.models import Network, Transaction, TransactionStatus  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def add_transaction(session_factory):
    counter = {"n": 0}

    def _add(**overrides) -> int:
        counter["n"] += 1
        values = {
            "user_id": 7,
            "reference": f"TXN-{counter['n']:04d}",
            "network": Network.MTN,
            "data_amount": "1GB",
            "recipient_phone": "0244000000",
            "status": TransactionStatus.PROCESSING,
            "retries": 0,
        }
        values.update(overrides)
        db = session_factory()
        try:
            tx = Transaction(**values)
            db.add(tx)
            db.commit()
            return tx.id
        finally:
            db.close()

    return _add


@pytest.fixture
def load_transaction(session_factory):
    def _load(tx_id: int) -> Transaction:
        db = session_factory()
        try:
            return db.get(Transaction, tx_id)
        finally:
            db.close()

    return _load
