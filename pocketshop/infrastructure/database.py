from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from pocketshop.core.config import settings

# SQLite (local dev / tests) needs the same-thread check off because sessions
# are driven from worker threads via asyncio.to_thread.
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
Base = declarative_base()
