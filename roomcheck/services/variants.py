"""Check-in / check-out inspection variants.

Both variants share the whole form and submission pipeline; they differ
only in how the lookup status is read, whether defects need evidence,
and which payload shape the backend expects.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from roomcheck.config import Settings, get_settings

NESTED = "nested"
FLAT = "flat"


@dataclass(frozen=True)
class InspectionVariant:
    name: str
    open_status: str
    completed_statuses: frozenset[str]
    requires_evidence: bool
    payload_shape: str
    has_task_flow: bool


CHECK_IN = InspectionVariant(
    name="check_in",
    open_status="waiting_form",
    completed_statuses=frozenset({"completed"}),
    requires_evidence=False,
    payload_shape=NESTED,
    has_task_flow=False,
)

CHECK_OUT = InspectionVariant(
    name="check_out",
    open_status="START",
    completed_statuses=frozenset({"INSPECTION_DONE", "COMPLETED"}),
    requires_evidence=True,
    payload_shape=FLAT,
    has_task_flow=True,
)

VARIANTS = {v.name: v for v in (CHECK_IN, CHECK_OUT)}


def get_variant(name: str, settings: Settings | None = None) -> InspectionVariant:
    """Look up a variant by name, applying any config.yaml overrides."""
    if name not in VARIANTS:
        raise ValueError(f"Unknown inspection variant: {name!r} (expected one of {sorted(VARIANTS)})")
    variant = VARIANTS[name]
    settings = settings or get_settings()
    override = settings.variants.get(name)
    if override and override.payload_shape:
        if override.payload_shape not in (NESTED, FLAT):
            raise ValueError(f"payload_shape must be {NESTED!r} or {FLAT!r}")
        variant = replace(variant, payload_shape=override.payload_shape)
    return variant
