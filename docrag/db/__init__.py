from sqlalchemy import create_engine

from ..config import get_settings


def make_engine(database_url: str):
    # Each store operation checks a connection out of this pool and returns it
    return create_engine(database_url, pool_pre_ping=True, pool_size=5, max_overflow=5)


engine = make_engine(get_settings().database_url)
