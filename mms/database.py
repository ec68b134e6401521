from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from mms.config import settings
import logging

# Set up logging
logger = logging.getLogger(__name__)

# For Neon.tech, ensure SSL is configured
if settings.DATABASE_URL and "neon.tech" in settings.DATABASE_URL:
    if "sslmode" not in settings.DATABASE_URL:
        if "?" in settings.DATABASE_URL:
            settings.DATABASE_URL += "&sslmode=require"
        else:
            settings.DATABASE_URL += "?sslmode=require"
        logger.info("Added sslmode=require to Neon database URL")


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # SQLite connections are shared between the threadpool workers
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Auto-reconnect on broken connections
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }


try:
    engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

    # Test the connection immediately
    with engine.connect() as conn:
        logger.info(f"Database connection successful ({engine.dialect.name})")

except Exception as e:
    logger.error(f"Database connection failed: {e}")
    raise

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Registers every model on Base.metadata before create_all / Alembic autogenerate
from mms import models  # noqa: E402,F401
