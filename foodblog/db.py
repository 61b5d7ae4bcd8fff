from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


class Database:
    """Owns the engine and session factory for one application instance.

    Constructed explicitly by the app factory, opened at startup with
    :meth:`create_all` and released at shutdown with :meth:`dispose`.
    """

    def __init__(self, url: str, echo: bool = False):
        kwargs = {}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in _MEMORY_URLS:
                # Use StaticPool so the same in-memory database is shared across connections
                kwargs["poolclass"] = StaticPool
        self.url = url
        self.engine = create_engine(url, echo=echo, **kwargs)
        self.SessionLocal = sessionmaker(autoflush=False, bind=self.engine)

    def create_all(self):
        # models must be imported so their tables are registered on Base
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self):
        self.engine.dispose()

    def session(self):
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()
