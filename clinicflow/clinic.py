"""Wiring of the clinic components around one store and one state."""
from datetime import date
from typing import List, Optional

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.audit import AuditTrail
from clinicflow.commands import CommandIssuer
from clinicflow.data_fields import DataFieldCatalog
from clinicflow.eligibility import is_free_return_eligible
from clinicflow.identity import IdentityProvider, LocalIdentityProvider
from clinicflow.lifecycle import AppointmentLifecycle
from clinicflow.logging_config import get_logger
from clinicflow.messaging import Messenger
from clinicflow.models import AppointmentStatus, EnrichedAppointment
from clinicflow.permissions import PermissionPolicy
from clinicflow.records import DoctorRegistry, PatientRegistry
from clinicflow.schedule import WeekLayout, layout_week
from clinicflow.stats import (
    DashboardStats,
    TimeRange,
    appointments_in_range,
    dashboard_stats,
    upcoming_appointments,
)
from clinicflow.store import DocumentStore, SQLDocumentStore
from clinicflow.text_generation import ClinicTextGenerator
from clinicflow.users import UserDirectory

logger = get_logger(__name__)


class Clinic:
    """
    Application context.

    Holds the store, the state replica and every component built on them.
    Create one per process and call ``start()`` before use.
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        text_generator: Optional[ClinicTextGenerator] = None
    ):
        self.store = store
        self.identity = identity
        self.state = ClinicState()
        self.issuer = CommandIssuer(store, self.state)

        self.appointments = AppointmentLifecycle(self.issuer, self.state)
        self.patients = PatientRegistry(self.issuer, self.state)
        self.doctors = DoctorRegistry(self.issuer, self.state)
        self.data_fields = DataFieldCatalog(self.issuer, self.state)
        self.permissions = PermissionPolicy(self.issuer, self.state)
        self.audit = AuditTrail(self.state, store)
        self.messenger = Messenger(self.issuer, self.state)
        self.text_generator = text_generator or ClinicTextGenerator()
        self.users = UserDirectory(self.issuer, self.state, identity)

    @classmethod
    def from_database_url(cls, database_url: str, text_generator: Optional[ClinicTextGenerator] = None) -> "Clinic":
        return cls(SQLDocumentStore(database_url), LocalIdentityProvider(database_url), text_generator)

    def start(self) -> None:
        """Subscribe to the store, seed defaults and follow sign-ins."""
        self.state.attach(self.store)
        self.permissions.load()
        self.data_fields.seed_defaults()
        self.users.watch_sessions()
        logger.info("clinic_started")

    def close(self) -> None:
        self.users.unwatch_sessions()
        self.state.detach()
        logger.info("clinic_stopped")

    def appointment_list(
        self,
        status: Optional[AppointmentStatus] = None,
        day: Optional[date] = None
    ) -> List[EnrichedAppointment]:
        """Enriched appointments, optionally filtered, newest date first."""
        appointments = [
            a for a in self.state.appointments
            if (status is None or a.status == status) and (day is None or a.date == day)
        ]
        appointments.sort(key=lambda a: (a.date, a.start_time), reverse=True)
        return self.state.enriched_appointments(appointments)

    def free_return_eligible(self, appointment_id: str, today: date) -> bool:
        appointment = self.state.appointment(appointment_id)
        return appointment is not None and is_free_return_eligible(appointment, today)

    def week(self, anchor: date) -> WeekLayout:
        """Calendar layout for the week of ``anchor`` (orphaned appointments left out)."""
        visible = [e.appointment for e in self.state.enriched_appointments()]
        return layout_week(visible, anchor)

    def stats(self, time_range: TimeRange = TimeRange.ALL, today: Optional[date] = None) -> DashboardStats:
        """Dashboard figures for appointments within ``time_range`` of ``today``."""
        appointments = appointments_in_range(self.state.appointments, time_range, today or date.today())
        return dashboard_stats(appointments, self.state.doctors)

    def upcoming(self, today: Optional[date] = None,
                 limit: int = config.UPCOMING_APPOINTMENTS_LIMIT) -> List[EnrichedAppointment]:
        return upcoming_appointments(self.state.enriched_appointments(), today or date.today(), limit)
