from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .models import Base


def make_engine(db_uri: str, echo: bool):
    return create_engine(db_uri, echo=echo, future=True)


def make_session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


class Database:
    """Engine and session factory owned by one app, created once and disposed at shutdown."""

    def __init__(self, db_uri: str, echo: bool = False):
        self.engine = make_engine(db_uri, echo=echo)
        self.SessionLocal = make_session_factory(self.engine)

    def create_all(self) -> None:
        with self.engine.begin() as conn:
            Base.metadata.create_all(bind=conn)

    def dispose(self) -> None:
        self.engine.dispose()
