# backend/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

from config import settings

load_dotenv()


def normalize_database_url(url: str) -> str:
    # Hosted Postgres hands out postgres://, SQLAlchemy wants postgresql://
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def make_engine(url: str):
    url = normalize_database_url(url)
    if "sqlite" in url:
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.SQLITE_BUSY_TIMEOUT,
        }
    else:
        connect_args = {}
    return create_engine(url, connect_args=connect_args)


SQLALCHEMY_DATABASE_URL = normalize_database_url(settings.DATABASE_URL)

engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Models must be imported so their tables are registered on Base.metadata
    import models.users  # noqa: F401
    import models.log  # noqa: F401
    import models.warehouse  # noqa: F401
    import models.location  # noqa: F401
    import models.product  # noqa: F401
    import models.inventory  # noqa: F401
    import models.movement  # noqa: F401
    import models.inbound_order  # noqa: F401
    import models.outbound_order  # noqa: F401

    Base.metadata.create_all(bind=engine)
