"""Staff user directory.

A user is two things: sign-in credentials held by the identity provider and
a profile record in the ``users`` collection keyed by email.
"""
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.commands import Command, CommandAction, CommandIssuer, CommandResult, FieldError
from clinicflow.identity import AuthenticationError, IdentityProvider
from clinicflow.logging_config import get_logger
from clinicflow.models import AuditAction, AuditCategory, PresenceStatus, User
from clinicflow.records import validation_errors

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    """Profiles and accounts are keyed by the trimmed, lower-cased email."""
    return (email or "").strip().lower()


class UserDirectory:
    """Add, edit and delete staff; track presence and sign-ins."""

    def __init__(self, issuer: CommandIssuer, state: ClinicState, identity: IdentityProvider):
        self.issuer = issuer
        self.state = state
        self.identity = identity
        self._unsubscribe: Optional[Callable[[], None]] = None

    def watch_sessions(self) -> None:
        """Follow sign-in and sign-out events from the identity provider."""
        self.unwatch_sessions()
        self._unsubscribe = self.identity.on_session_change(self._on_session_change)

    def unwatch_sessions(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_session_change(self, email: str, signed_in: bool) -> None:
        user = self.state.user(email)
        if user is None:
            logger.warning("session_without_profile", email=email)
            return
        self.set_presence(email, PresenceStatus.ONLINE if signed_in else PresenceStatus.OFFLINE)
        if signed_in:
            self.issuer.audit(user, AuditAction.LOGIN, AuditCategory.SYSTEM, f"{user.name} signed in")

    def add_user(self, fields: Dict[str, Any], actor: Optional[User] = None) -> CommandResult:
        """
        Create credentials and a profile.

        Args:
            fields: email, name, role, password; optional avatar
            actor: Admin adding the user

        Returns:
            CommandResult with the stored profile
        """
        password = fields.get("password") or ""
        email = normalize_email(str(fields.get("email") or ""))
        errors = []
        if not password:
            errors.append(FieldError("password", "password is required", "required"))
        try:
            user = User.model_validate({
                "email": email,
                "name": str(fields.get("name") or "").strip(),
                "role": fields.get("role"),
                "avatar": fields.get("avatar") or "",
                "status": PresenceStatus.OFFLINE,
            })
        except ValidationError as e:
            return CommandResult.invalid(errors + validation_errors(e))
        if errors:
            return CommandResult.invalid(errors)

        try:
            self.identity.create_account(email, password)
        except AuthenticationError as e:
            return CommandResult.invalid([FieldError("email", str(e), "duplicate")], str(e))

        data = user.model_dump(mode="json")
        return self.issuer.issue(
            Command(
                collection=config.USERS,
                action=CommandAction.SET,
                key=email,
                data=data,
                category=AuditCategory.USER,
                details=f"Added user {user.name} ({user.role.value})",
            ),
            actor=actor,
            audit_action=AuditAction.CREATE,
        )

    def edit_user(self, email: str, changes: Dict[str, Any], actor: Optional[User] = None) -> CommandResult:
        """Change name, role or avatar. Role changes apply on the next permission check."""
        email = normalize_email(email)
        current = self.state.user(email)
        if current is None:
            return CommandResult.failure("not_found", f"User {email} not found")

        allowed = {k: v for k, v in changes.items() if k in ("name", "role", "avatar") and v is not None}
        merged = {**current.model_dump(mode="json"), **allowed}
        if isinstance(merged.get("name"), str):
            merged["name"] = merged["name"].strip()
        try:
            user = User.model_validate(merged)
        except ValidationError as e:
            return CommandResult.invalid(validation_errors(e))

        return self.issuer.issue(
            Command(
                collection=config.USERS,
                action=CommandAction.UPDATE,
                key=email,
                data={"name": user.name, "role": user.role.value, "avatar": user.avatar},
                category=AuditCategory.USER,
                details=f"Updated user {user.name}",
            ),
            actor=actor,
        )

    def delete_user(self, email: str, actor: Optional[User] = None) -> CommandResult:
        """
        Delete credentials first, then the profile.

        An account already missing from the identity provider does not block
        removing the profile.
        """
        email = normalize_email(email)
        result = self.identity.delete_account(email)
        if not result.success:
            self.state.notify("Could not delete user", result.message)
            return CommandResult.failure("unavailable", result.message)

        current = self.state.user(email)
        name = current.name if current else email
        return self.issuer.issue(
            Command(
                collection=config.USERS,
                action=CommandAction.DELETE,
                key=email,
                category=AuditCategory.USER,
                details=f"Deleted user {name}",
            ),
            actor=actor,
        )

    def set_presence(self, email: str, status: PresenceStatus) -> CommandResult:
        email = normalize_email(email)
        return self.issuer.issue(
            Command(
                collection=config.USERS,
                action=CommandAction.UPDATE,
                key=email,
                data={"status": status.value},
                category=AuditCategory.USER,
            )
        )

    def user_for_token(self, token: str) -> Optional[User]:
        """
        Profile of the user signed in under ``token``.

        Raises:
            SessionNotFoundError: If the token is unknown
        """
        return self.state.user(self.identity.resolve(token))
