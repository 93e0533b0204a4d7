"""Identity collaborator: accounts, sign-in sessions, account deletion."""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Callable, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from clinicflow.database_models import Account, AuthSession, Base, create_db_engine
from clinicflow.logging_config import get_logger

logger = get_logger(__name__)

# Called with (email, signed_in)
SessionCallback = Callable[[str, bool], None]


class AuthenticationError(Exception):
    """Raised when credentials are wrong or an account cannot be created."""
    pass


class SessionNotFoundError(Exception):
    """Raised when a session token is unknown or expired."""
    pass


@dataclass
class SignedInSession:
    token: str
    email: str
    uid: str


@dataclass
class DeleteAccountResult:
    success: bool
    message: str


class IdentityProvider(ABC):
    """Interface the rest of the package uses for authentication."""

    def __init__(self):
        self._listeners: List[SessionCallback] = []

    @abstractmethod
    def login(self, email: str, password: str) -> SignedInSession:
        pass

    @abstractmethod
    def logout(self, token: str) -> None:
        pass

    @abstractmethod
    def create_account(self, email: str, password: str) -> str:
        """Create an account and return its uid."""

    @abstractmethod
    def delete_account(self, email: str) -> DeleteAccountResult:
        pass

    @abstractmethod
    def resolve(self, token: str) -> str:
        """Return the email signed in under ``token``."""

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Register ``callback`` for sign-in/sign-out. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def cleanup_expired_sessions(self, max_age_hours: int = 48) -> int:
        """Drop stale sessions. Providers without server-side sessions have none."""
        return 0

    def _emit(self, email: str, signed_in: bool):
        for callback in list(self._listeners):
            try:
                callback(email, signed_in)
            except Exception:
                logger.exception("session_listener_failed", email=email)


class LocalIdentityProvider(IdentityProvider):
    """
    Identity provider backed by the service database.

    Pattern: Thin wrapper around SQLAlchemy; passwords hashed with bcrypt,
    sessions are opaque random tokens.
    """

    def __init__(self, database_url: str):
        """
        Initialize with database connection.

        Args:
            database_url: SQLAlchemy connection string
        """
        super().__init__()
        self.engine = create_db_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_account(self, email: str, password: str) -> str:
        """
        Create sign-in credentials.

        Raises:
            AuthenticationError: If the email is taken or the password is empty
        """
        email = email.strip().lower()
        if not email or not password:
            raise AuthenticationError("Email and password are required")

        uid = uuid.uuid4().hex
        try:
            with self.SessionLocal() as db:
                db.add(Account(
                    email=email,
                    uid=uid,
                    password_hash=Account.hash_password(password),
                    created_at=datetime.now(UTC)
                ))
                db.commit()
        except IntegrityError as e:
            raise AuthenticationError(f"An account for {email} already exists") from e

        logger.info("account_created", email=email)
        return uid

    def login(self, email: str, password: str) -> SignedInSession:
        """
        Verify credentials and open a session.

        Raises:
            AuthenticationError: If the email or password is wrong
        """
        email = email.strip().lower()
        with self.SessionLocal() as db:
            account = db.get(Account, email)
            if not account or not Account.verify_password(password, account.password_hash):
                logger.warning("login_failed", email=email)
                raise AuthenticationError("Invalid email or password")

            token = f"st_{uuid.uuid4().hex}"
            db.add(AuthSession(
                token=token,
                email=email,
                created_at=datetime.now(UTC),
                last_activity=datetime.now(UTC)
            ))
            db.commit()
            session = SignedInSession(token=token, email=email, uid=account.uid)

        logger.info("login_succeeded", email=email)
        self._emit(email, True)
        return session

    def logout(self, token: str) -> None:
        """End a session. Unknown tokens are ignored."""
        with self.SessionLocal() as db:
            session = db.get(AuthSession, token)
            if not session:
                return
            email = session.email
            db.delete(session)
            db.commit()

        logger.info("logout", email=email)
        self._emit(email, False)

    def resolve(self, token: str) -> str:
        """
        Map a session token to its email.

        Raises:
            SessionNotFoundError: If the token is unknown
        """
        with self.SessionLocal() as db:
            session = db.get(AuthSession, token)
            if not session:
                raise SessionNotFoundError("Session not found")

            session.last_activity = datetime.now(UTC)
            db.commit()
            return session.email

    def delete_account(self, email: str) -> DeleteAccountResult:
        """
        Delete credentials and every session of ``email``.

        A missing account is reported as success; only backend failures fail.
        """
        email = email.strip().lower()
        try:
            with self.SessionLocal() as db:
                account = db.get(Account, email)
                if account is None:
                    logger.info("account_delete_missing", email=email)
                    return DeleteAccountResult(True, f"User with email {email} not found.")
                db.query(AuthSession).filter(AuthSession.email == email).delete()
                db.delete(account)
                db.commit()
        except SQLAlchemyError as e:
            logger.error("account_delete_failed", email=email, error=str(e))
            return DeleteAccountResult(False, f"Error deleting user: {e}")

        logger.info("account_deleted", email=email)
        return DeleteAccountResult(True, f"Successfully deleted user {email}.")

    def cleanup_expired_sessions(self, max_age_hours: int = 48) -> int:
        """
        Delete sessions inactive for more than max_age_hours.

        Returns:
            Number of deleted sessions
        """
        cutoff_time = datetime.now(UTC) - timedelta(hours=max_age_hours)

        with self.SessionLocal() as db:
            deleted = db.query(AuthSession).filter(
                AuthSession.last_activity < cutoff_time
            ).delete()
            db.commit()

        return deleted

    def _update_last_activity(self, token: str, timestamp: datetime):
        """Helper for testing - manually update last_activity."""
        with self.SessionLocal() as db:
            session = db.get(AuthSession, token)
            if session:
                session.last_activity = timestamp
                db.commit()

    def account_exists(self, email: str) -> bool:
        with self.SessionLocal() as db:
            return db.get(Account, email.strip().lower()) is not None
