"""SQLAlchemy tables backing the document store and identity provider."""
from datetime import datetime, UTC

import bcrypt
from sqlalchemy import Column, String, DateTime, JSON, create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(UTC)


def create_db_engine(database_url: str):
    """
    Create an engine for ``database_url``.

    In-memory SQLite gets a single shared connection so that every thread
    (FastAPI runs sync endpoints in a worker pool) sees the same database.
    """
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


class Record(Base):
    """One JSON document in a named collection."""
    __tablename__ = "records"

    collection = Column(String(100), primary_key=True, index=True)
    key = Column(String(255), primary_key=True)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<Record(collection={self.collection}, key={self.key})>"


class Account(Base):
    """Sign-in credentials for a staff member."""
    __tablename__ = "accounts"

    email = Column(String(254), primary_key=True, index=True)
    uid = Column(String(64), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash password using bcrypt."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        """Verify password against hash."""
        return bcrypt.checkpw(password.encode(), password_hash.encode())

    def __repr__(self):
        return f"<Account(email={self.email})>"


class AuthSession(Base):
    """Signed-in session token."""
    __tablename__ = "auth_sessions"

    token = Column(String(255), primary_key=True, index=True)
    email = Column(String(254), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    last_activity = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<AuthSession(email={self.email})>"
