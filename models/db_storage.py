from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import SQLAlchemyError

from models.base_model import Base
# imported so their tables register on Base.metadata
from models.user import User  # noqa: F401
from models.refresh_token import RefreshToken  # noqa: F401


class DBStorage:
    """Engine + scoped_session holder.

    Built once by the application factory and handed to the SQL repositories.
    Every statement is bounded: Postgres gets a server-side statement_timeout,
    SQLite a busy timeout, and the pool a checkout timeout.
    """

    def __init__(self, url: str, statement_timeout_ms: int = 5000,
                 pool_timeout: float = 5.0, echo: bool = False):
        self.__engine = create_engine(url, echo=echo, **self._engine_options(url, statement_timeout_ms, pool_timeout))
        self.__session = None

        if self.__engine.url.get_backend_name() == "sqlite":
            # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    @staticmethod
    def _engine_options(url: str, statement_timeout_ms: int, pool_timeout: float) -> dict:
        if url.startswith("sqlite"):
            options = {"connect_args": {"timeout": statement_timeout_ms / 1000, "check_same_thread": False}}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise each checkout sees an empty database
                options["poolclass"] = StaticPool
            return options
        options = {"pool_pre_ping": True, "pool_timeout": pool_timeout}
        if url.startswith("postgresql"):
            options["connect_args"] = {"options": f"-c statement_timeout={int(statement_timeout_ms)}"}
        return options

    @property
    def engine(self):
        return self.__engine

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def rollback(self):
        self.__session.rollback()

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    def dispose(self):
        """Release pooled connections (process shutdown)"""
        self.close()
        self.__engine.dispose()

    # expose the SQLAlchemy session for querying
    def get_session(self):
        return self.__session
