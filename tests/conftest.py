import os
import tempfile


# Point the app at a throwaway SQLite database before anything imports rentx
_DB_DIR = tempfile.mkdtemp(prefix="rentx-tests-")
os.environ.setdefault("DB_URL", f"sqlite:///{os.path.join(_DB_DIR, 'rentx.db')}")
os.environ.setdefault("ENV", "dev")
os.environ.setdefault("OTP_MODE", "dev")
os.environ.setdefault("SWEEPER_ENABLED", "false")
os.environ.setdefault("NOTIFY_MODE", "log")

import pytest  # noqa: E402

from rentx.database import SessionLocal, engine  # noqa: E402
from rentx.models import Base  # noqa: E402


Base.metadata.create_all(bind=engine)


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
