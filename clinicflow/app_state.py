"""Application state: an in-process read replica of the store.

A ``ClinicState`` is created once per application and handed to every
component that needs it. Each collection is replaced wholesale whenever the
store publishes a snapshot, so a snapshot always supersedes local writes
made before it.
"""
import uuid
from typing import Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from clinicflow import config
from clinicflow.logging_config import get_logger
from clinicflow.models import (
    Appointment,
    AuditLog,
    DataField,
    Doctor,
    EnrichedAppointment,
    Message,
    Notification,
    NotificationType,
    Patient,
    Permissions,
    User,
)
from clinicflow.store import DocumentStore, Subscription

logger = get_logger(__name__)

MODELS: Dict[str, Type[BaseModel]] = {
    config.PATIENTS: Patient,
    config.DOCTORS: Doctor,
    config.APPOINTMENTS: Appointment,
    config.USERS: User,
    config.MESSAGES: Message,
    config.AUDIT_LOGS: AuditLog,
    config.DATA_FIELDS: DataField,
}

# Snapshot ordering requested from the store per collection
ORDERING = {
    config.MESSAGES: ("timestamp", False),
    config.AUDIT_LOGS: ("timestamp", True),
}


class ClinicState:
    """
    Snapshot holder with an explicit read/write API.

    Responsibilities:
    - Keep one snapshot per collection, keyed by record identifier
    - Apply optimistic local writes until the next snapshot arrives
    - Join appointments with patients and doctors (orphans dropped)
    - Queue one-shot notifications for the user
    """

    def __init__(self):
        self._records: Dict[str, Dict[str, BaseModel]] = {name: {} for name in MODELS}
        self._permissions: Dict[str, Permissions] = {}
        self._notifications: List[Notification] = []
        self._subscriptions: List[Subscription] = []

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def attach(self, store: DocumentStore) -> None:
        """Subscribe to every collection of ``store``."""
        self.detach()
        for collection in config.COLLECTIONS:
            order_by, descending = ORDERING.get(collection, (None, False))
            self._subscriptions.append(
                store.subscribe(
                    collection,
                    lambda records, name=collection: self.replace_snapshot(name, records),
                    order_by=order_by,
                    descending=descending,
                )
            )
        logger.info("state_attached", collections=len(self._subscriptions))

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

    def replace_snapshot(self, collection: str, records: List[dict]) -> None:
        """Replace the whole in-memory snapshot for ``collection``."""
        if collection == config.PERMISSIONS:
            self._permissions = {
                record["role"]: Permissions.model_validate(record)
                for record in records
                if record.get("role")
            }
            return

        model = MODELS.get(collection)
        if model is None:
            logger.warning("unknown_collection", collection=collection)
            return

        field = config.key_field(collection)
        snapshot: Dict[str, BaseModel] = {}
        for record in records:
            try:
                snapshot[str(record[field])] = model.model_validate(record)
            except (KeyError, ValidationError) as e:
                logger.warning("malformed_record_skipped", collection=collection, error=str(e))
        self._records[collection] = snapshot

    def apply_local(self, collection: str, key: str, record: Optional[dict]) -> None:
        """
        Optimistically reflect a write before the store confirms it.

        ``record=None`` removes the key. The next snapshot wins regardless.
        """
        if collection == config.PERMISSIONS:
            if record is None:
                self._permissions.pop(key, None)
            else:
                self._permissions[key] = Permissions.model_validate(record)
            return

        model = MODELS.get(collection)
        if model is None:
            return
        if record is None:
            self._records[collection].pop(key, None)
        else:
            self._records[collection][key] = model.model_validate(record)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def all(self, collection: str) -> list:
        return list(self._records.get(collection, {}).values())

    def find(self, collection: str, key: str) -> Optional[BaseModel]:
        return self._records.get(collection, {}).get(key)

    @property
    def patients(self) -> List[Patient]:
        return self.all(config.PATIENTS)

    @property
    def doctors(self) -> List[Doctor]:
        return self.all(config.DOCTORS)

    @property
    def appointments(self) -> List[Appointment]:
        return self.all(config.APPOINTMENTS)

    @property
    def users(self) -> List[User]:
        return self.all(config.USERS)

    @property
    def messages(self) -> List[Message]:
        return self.all(config.MESSAGES)

    @property
    def audit_logs(self) -> List[AuditLog]:
        return self.all(config.AUDIT_LOGS)

    @property
    def data_fields(self) -> List[DataField]:
        return self.all(config.DATA_FIELDS)

    @property
    def permissions(self) -> Dict[str, Permissions]:
        return dict(self._permissions)

    def patient(self, patient_id: str) -> Optional[Patient]:
        return self.find(config.PATIENTS, patient_id)

    def doctor(self, doctor_id: str) -> Optional[Doctor]:
        return self.find(config.DOCTORS, doctor_id)

    def appointment(self, appointment_id: str) -> Optional[Appointment]:
        return self.find(config.APPOINTMENTS, appointment_id)

    def user(self, email: str) -> Optional[User]:
        return self.find(config.USERS, email)

    def enriched_appointments(self, appointments: Optional[List[Appointment]] = None) -> List[EnrichedAppointment]:
        """
        Join appointments with their patient and doctor.

        Appointments whose patient or doctor no longer exists are left out.
        """
        if appointments is None:
            appointments = self.appointments
        enriched = []
        for appointment in appointments:
            patient = self.patient(appointment.patient_id)
            doctor = self.doctor(appointment.doctor_id)
            if patient is None or doctor is None:
                continue
            enriched.append(EnrichedAppointment(appointment=appointment, patient=patient, doctor=doctor))
        return enriched

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def notify(self, title: str, description: str = "",
               kind: NotificationType = NotificationType.SYSTEM_ALERT) -> Notification:
        notification = Notification(
            id=uuid.uuid4().hex,
            title=title,
            description=description,
            type=kind,
        )
        self._notifications.append(notification)
        logger.info("notification", title=title, type=kind.value)
        return notification

    @property
    def notifications(self) -> List[Notification]:
        return sorted(self._notifications, key=lambda n: n.timestamp, reverse=True)

    def unread_notifications(self) -> List[Notification]:
        return [n for n in self.notifications if not n.read]

    def mark_read(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification.id == notification_id:
                notification.read = True
                return True
        return False

    def mark_all_read(self) -> None:
        for notification in self._notifications:
            notification.read = True
