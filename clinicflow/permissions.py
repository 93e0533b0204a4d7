"""Role-based permissions."""
from typing import Dict

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.commands import Command, CommandAction, CommandIssuer, CommandResult, FieldError
from clinicflow.logging_config import get_logger
from clinicflow.models import AuditCategory, Permissions, User, UserRole

logger = get_logger(__name__)

RESOURCES = ("patients", "doctors", "appointments", "users")
ACTIONS = ("add", "edit", "delete", "cancel")


class PermissionDeniedError(Exception):
    """Raised when a role may not perform an action."""

    def __init__(self, role: UserRole, resource: str, action: str):
        self.role = role
        self.resource = resource
        self.action = action
        super().__init__(f"{role.value} may not {action} {resource}")


DEFAULT_PERMISSIONS: Dict[UserRole, Permissions] = {
    UserRole.ADMIN: Permissions.model_validate({
        "patients": {"add": True, "edit": True, "delete": True},
        "doctors": {"add": True, "edit": True, "delete": True},
        "appointments": {"add": True, "edit": True, "delete": True, "cancel": True},
        "users": {"add": True, "edit": True, "delete": True},
    }),
    UserRole.DOCTOR: Permissions.model_validate({
        "patients": {"add": True, "edit": True, "delete": False},
        "doctors": {"add": False, "edit": False, "delete": False},
        "appointments": {"add": True, "edit": True, "delete": False, "cancel": True},
        "users": {"add": False, "edit": False, "delete": False},
    }),
    UserRole.RECEPTIONIST: Permissions.model_validate({
        "patients": {"add": True, "edit": True, "delete": False},
        "doctors": {"add": False, "edit": False, "delete": False},
        "appointments": {"add": True, "edit": True, "delete": True, "cancel": True},
        "users": {"add": False, "edit": False, "delete": False},
    }),
}


class PermissionPolicy:
    """
    Capability checks against the per-role matrix.

    The matrix is read from ``ClinicState`` on every check, so role and
    matrix changes apply on the next call.
    """

    def __init__(self, issuer: CommandIssuer, state: ClinicState):
        self.issuer = issuer
        self.state = state

    def load(self) -> Dict[str, Permissions]:
        """
        Load the matrix from the store, seeding defaults for missing roles.

        Called once at session start.
        """
        stored = {record.get("role"): record for record in self.issuer.store.list(config.PERMISSIONS)}
        for role, permissions in DEFAULT_PERMISSIONS.items():
            if role.value in stored:
                continue
            self.issuer.store.set(config.PERMISSIONS, role.value, permissions.model_dump())
            logger.info("permissions_seeded", role=role.value)
        return self.state.permissions

    def matrix(self, role: UserRole) -> Permissions:
        return self.state.permissions.get(role.value) or DEFAULT_PERMISSIONS[role]

    def can(self, role: UserRole, resource: str, action: str) -> bool:
        resource_permissions = getattr(self.matrix(role), resource, None)
        if resource_permissions is None:
            return False
        return bool(getattr(resource_permissions, action, False))

    def require(self, user: User, resource: str, action: str) -> None:
        """Raise PermissionDeniedError unless ``user``'s current role allows it."""
        role = self.current_role(user)
        if not self.can(role, resource, action):
            logger.warning("permission_denied", email=user.email, role=role.value,
                           resource=resource, action=action)
            raise PermissionDeniedError(role, resource, action)

    def current_role(self, user: User) -> UserRole:
        """Role from the latest user snapshot, falling back to ``user.role``."""
        latest = self.state.user(user.email)
        return latest.role if latest else user.role

    def update_permission(
        self,
        actor: User,
        role: UserRole,
        resource: str,
        action: str,
        value: bool
    ) -> CommandResult:
        """
        Toggle one capability for a role. Admin only.

        Args:
            actor: User making the change
            role: Role whose matrix is edited
            resource: patients, doctors, appointments or users
            action: add, edit, delete (or cancel for appointments)
            value: New setting

        Returns:
            CommandResult with the updated matrix
        """
        if self.current_role(actor) != UserRole.ADMIN:
            return CommandResult.failure("forbidden", "Only administrators can change permissions")
        if resource not in RESOURCES:
            return CommandResult.invalid([FieldError("resource", f"Unknown resource: {resource}")])
        if action not in ACTIONS or (action == "cancel" and resource != "appointments"):
            return CommandResult.invalid([FieldError("action", f"Unknown action for {resource}: {action}")])

        data = self.matrix(role).model_dump()
        data[resource][action] = bool(value)

        return self.issuer.issue(
            Command(
                collection=config.PERMISSIONS,
                action=CommandAction.SET,
                key=role.value,
                data=data,
                category=AuditCategory.USER,
                details=f"{'Granted' if value else 'Revoked'} {action} on {resource} for {role.value}",
            ),
            actor=actor,
        )
