from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from numscheme.core.config import settings

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_session_factory() -> sessionmaker:
    """Session factory handed to readers that manage their own scoped session."""
    return SessionLocal
