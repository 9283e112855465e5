from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from storefront.core.config import settings

class Base(DeclarativeBase): pass

def make_engine(dsn: str):
    if dsn.startswith("sqlite"):
        # one shared connection so an in-memory database survives across threads
        return create_engine(dsn, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(dsn, pool_pre_ping=True)

engine = make_engine(settings.POSTGRES_DSN)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
