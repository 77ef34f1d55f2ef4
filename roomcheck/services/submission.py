"""Submission gate and payload assembly.

Checks run in a fixed order (completeness, evidence, signature,
confirmation) and the first failure aborts with a ValidationError, so an
incomplete inspection never reaches the webhook.
"""

from __future__ import annotations

import logging

from roomcheck.errors import (
    BackendUnavailable,
    SubmissionError,
    SubmissionFailure,
    ValidationError,
    ValidationKind,
)
from roomcheck.schemas.area import AreaStatus
from roomcheck.schemas.session import InspectionSession
from roomcheck.schemas.submission import (
    AreaMeta,
    FlatPayload,
    NestedPayload,
    SubmitFields,
    SubmitResult,
)
from roomcheck.services.form_state import InspectionForm
from roomcheck.services.variants import FLAT, InspectionVariant

logger = logging.getLogger(__name__)


def missing_evidence(form: InspectionForm) -> list[str]:
    """Labels of problem areas lacking a note or a photo."""
    return [
        a.label
        for a in form.checklist
        if form.areas[a.id].status is AreaStatus.PROBLEM
        and (not form.areas[a.id].note.strip() or not form.areas[a.id].attachments)
    ]


def validate_form(form: InspectionForm, variant: InspectionVariant, confirmed: bool = False) -> None:
    pending = [a.label for a in form.pending_areas()]
    if pending:
        raise ValidationError(
            ValidationKind.INCOMPLETE_AREAS,
            f"Please check every item ({len(pending)} left): " + ", ".join(pending),
            pending,
        )

    if variant.requires_evidence:
        lacking = missing_evidence(form)
        if lacking:
            raise ValidationError(
                ValidationKind.MISSING_EVIDENCE,
                "Items marked as a problem need a note and at least one photo: " + ", ".join(lacking),
                lacking,
            )

    if not form.signature:
        raise ValidationError(ValidationKind.MISSING_SIGNATURE, "Please sign before submitting.")

    if not confirmed:
        raise ValidationError(
            ValidationKind.CONFIRMATION_REQUIRED,
            "Confirm the submission. It cannot be edited once sent.",
        )


def build_payload(
    session: InspectionSession,
    form: InspectionForm,
    variant: InspectionVariant,
    default_inspector: str = "Tenant",
) -> NestedPayload | FlatPayload:
    meta_by_area = {
        rec.area_id: AreaMeta(status=rec.status, note=rec.note)
        for rec in form.ordered_records()
    }
    files = [att.transport() for rec in form.ordered_records() for att in rec.attachments]
    inspector = form.inspector_name.strip() or default_inspector

    if variant.payload_shape == FLAT:
        return FlatPayload(
            flow_id=session.flow_id,
            variant=variant.name,
            building=session.building,
            floor=session.floor,
            room_id=session.room_id,
            tenant_name=session.tenant_name or "",
            tenant_phone=session.tenant_phone or "",
            inspector=inspector,
            global_notes=form.global_note,
            tenant_signature=form.signature or "",
            meta_by_area=meta_by_area,
            files=files,
        )

    return NestedPayload(
        flow_id=session.flow_id,
        fields=SubmitFields(
            building=session.building,
            floor=session.floor,
            room_id=session.room_id,
            inspector=inspector,
            global_notes=form.global_note,
            tenant_signature=form.signature or "",
        ),
        meta_by_area=meta_by_area,
        files=files,
    )


async def submit_inspection(
    backend,
    session: InspectionSession,
    form: InspectionForm,
    variant: InspectionVariant,
    confirmed: bool,
    default_inspector: str = "Tenant",
) -> SubmitResult:
    """Validate, assemble and send. The caller keeps ``form`` on any failure."""
    validate_form(form, variant, confirmed)
    payload = build_payload(session, form, variant, default_inspector)

    try:
        res = await backend.submit(payload)
    except BackendUnavailable as e:
        logger.exception("Submission for flow %s failed", session.flow_id)
        raise SubmissionError(SubmissionFailure.NETWORK, str(e)) from e

    if not res.ok or not res.pdf_url:
        logger.error("Backend rejected flow %s: %s", session.flow_id, res.model_dump())
        raise SubmissionError(SubmissionFailure.REJECTED, str(res.model_dump()))

    logger.info("Submitted flow %s (%d files), pdf at %s", session.flow_id, len(payload.files), res.pdf_url)
    return SubmitResult(
        pdf_url=res.pdf_url,
        room_id=res.room_id or session.room_id,
        signature_url=res.signature_url,
    )
