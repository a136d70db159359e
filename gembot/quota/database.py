"""SQLAlchemy database models for usage persistence."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer, String, create_engine, func, make_url, select, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DBUsageRecord(Base):
    """SQLAlchemy model for per-user daily usage counters."""

    __tablename__ = "usage_records"

    user_id = Column(String(255), primary_key=True)
    day = Column(String(10), nullable=False)  # YYYY-MM-DD
    used = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


class DatabaseManager:
    """Database manager using SQLAlchemy."""

    def __init__(self, database_url: str):
        """
        Initialize database manager.

        Args:
            database_url: SQLAlchemy database URL
        """
        self.database_url = database_url
        self.engine = None
        self.SessionLocal = None

    def initialize(self) -> None:
        """Initialize database connection and create tables."""
        try:
            url = make_url(self.database_url)
            if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

            self.engine = create_engine(
                self.database_url,
                echo=False,
                pool_pre_ping=True,  # Verify connections before use
                pool_recycle=3600,
            )

            self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

            Base.metadata.create_all(bind=self.engine)

        except Exception as e:
            raise RuntimeError(f"Failed to initialize database: {e}") from e

    def get_session(self) -> Session:
        """Get database session using context manager pattern."""
        if not self.SessionLocal:
            raise RuntimeError("Database not initialized")
        return self.SessionLocal()

    def shutdown(self) -> None:
        """Shutdown database connections."""
        if self.engine:
            self.engine.dispose()

    def health_check(self) -> Dict[str, Any]:
        """Perform database health check."""
        try:
            with self.get_session() as session:
                result = session.execute(text("SELECT 1")).scalar()
                total_users = session.execute(select(func.count()).select_from(DBUsageRecord)).scalar()

                return {
                    "healthy": True,
                    "database_url": self.database_url,
                    "connection_test": result == 1,
                    "total_users": total_users,
                    "timestamp": _utcnow().isoformat()
                }

        except Exception as e:
            return {
                "healthy": False,
                "error": str(e),
                "timestamp": _utcnow().isoformat()
            }
