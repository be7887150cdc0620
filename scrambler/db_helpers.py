# scrambler/db_helpers.py
import logging
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

load_dotenv()

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n"
)

logger = logging.getLogger("scrambler_backend")

# --- Configuration ---
DATABASE_URL        = os.environ.get("DATABASE_URL", "")
DB_HOST             = os.environ.get("DB_HOST", "localhost")
DB_PORT             = int(os.environ.get("DB_PORT", "5432"))
DB_NAME             = os.environ.get("DB_NAME", "scrambler")
DB_USER             = os.environ.get("DB_USER", "postgres")
DB_PASSWORD         = os.environ.get("DB_PASSWORD", "")

SESSION_TTL_SECONDS = int(os.environ.get("SESSION_TTL_SECONDS", "3600"))
SESSION_BACKEND     = os.environ.get("SESSION_BACKEND", "db").strip().lower()
SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "sessionId")
COOKIE_SECURE       = os.environ.get("COOKIE_SECURE", "true").strip().lower() == "true"
ENABLE_ADMIN_ROUTES = os.environ.get("ENABLE_ADMIN_ROUTES", "false").strip().lower() == "true"

HOST                = os.environ.get("HOST", "0.0.0.0")
PORT                = int(os.environ.get("PORT", "3000"))

IS_LOCAL_DB = (DB_HOST == "localhost")


def get_db_url() -> str:
    if DATABASE_URL:
        return DATABASE_URL

    if IS_LOCAL_DB:
        return "sqlite:///scrambler.db"

    return f"postgresql+pg8000://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


def get_db_engine(url: str | None = None):
    url = url or get_db_url()

    if url.startswith("sqlite"):
        logger.info(f"[DB] Using SQLite URL: {url}")
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
        )

    logger.info(f"[DB] Connecting to database host: {DB_HOST}:{DB_PORT}/{DB_NAME}")

    if "+pg8000" not in url:
        return create_engine(url, pool_pre_ping=True)

    # pg8000 supports 'timeout' in seconds
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args={"timeout": 10},  # fail in 10s instead of hanging forever
    )


def create_session_factory(engine=None) -> sessionmaker:
    engine = engine if engine is not None else get_db_engine()
    return sessionmaker(bind=engine, autoflush=False, future=True)
