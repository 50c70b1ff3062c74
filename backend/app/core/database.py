import socket

from sqlalchemy import create_engine, event
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.settings import settings


def normalize_database_url(url: str) -> str:
    # Supabase dashboards hand out postgres:// URLs, which SQLAlchemy rejects.
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def _postgres_connect_args(url: str) -> dict:
    try:
        parsed = make_url(url)
    except ArgumentError:
        return {}
    if not (parsed.drivername or "").startswith("postgresql") or not parsed.host:
        return {}
    args: dict = {"sslmode": "require"}
    try:
        infos = socket.getaddrinfo(parsed.host, int(parsed.port or 5432), family=socket.AF_INET, type=socket.SOCK_STREAM)
    except (OSError, ValueError):
        return args
    if infos and infos[0][4][0]:
        # Pin IPv4 for hosts that also resolve to IPv6.
        args["hostaddr"] = infos[0][4][0]
    return args


def build_engine(url: str, **kwargs):
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        connect_args: dict = {"check_same_thread": False}
    else:
        connect_args = _postgres_connect_args(url)
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True, **kwargs)

    if url.startswith("sqlite"):
        # Cascading deletes from profiles/tickets rely on FK enforcement.
        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


SQLALCHEMY_DATABASE_URL = normalize_database_url(settings.database_url)

engine = build_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
