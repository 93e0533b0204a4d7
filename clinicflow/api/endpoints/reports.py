"""AI report helpers."""
from fastapi import APIRouter, Depends

from clinicflow.api.dependencies import get_clinic, get_current_user
from clinicflow.api.models import ExplainTermRequest, ReportDraftRequest
from clinicflow.clinic import Clinic
from clinicflow.logging_config import get_logger
from clinicflow.models import AuditAction, AuditCategory, User
from clinicflow.store import StoreUnavailableError
from clinicflow.text_generation import ReportDraft, TermExplanation

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.post("/explain-term", response_model=TermExplanation)
def explain_term(request: ExplainTermRequest, user: User = Depends(get_current_user),
                 clinic: Clinic = Depends(get_clinic)):
    """
    Explain a medical term in plain language.

    Raises:
        503: Text generation unavailable
    """
    return clinic.text_generator.explain_medical_term(request.term)


@router.post("/draft", response_model=ReportDraft)
def draft_report(request: ReportDraftRequest, user: User = Depends(get_current_user),
                 clinic: Clinic = Depends(get_clinic)):
    """Billing report draft with ICD codes from appointment notes."""
    draft = clinic.text_generator.generate_report_draft(request.appointment_notes)
    try:
        clinic.audit.record(user, AuditAction.CREATE, AuditCategory.REPORT, "Generated report draft")
    except StoreUnavailableError as e:
        logger.error("report_audit_failed", error=str(e))
    return draft
