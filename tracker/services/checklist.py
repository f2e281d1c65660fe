"""
DOST Project Tracker
Document checklist templates and phase progress.

Checklists are static: one ordered list of rows per (project kind, phase).
A row with a positive ``id`` is a countable document slot whose uploads are
correlated by ``templateItemId == "{PHASE}-{id}"``.  Rows with id 0 are
section headers or notes shown for orientation only.

Progress for a phase = uploaded slots / countable slots, as a whole
percentage rounded half-up (1 of 3 → 33, 2 of 3 → 67, 1 of 13 → 8).
"""

import re
from collections import defaultdict

from tracker.core.exceptions import ValidationError
from tracker.models.project import KIND_CEST, KIND_SETUP

PHASE_INITIATION = "INITIATION"
PHASE_IMPLEMENTATION = "IMPLEMENTATION"
PHASE_MONITORING = "MONITORING"

KIND_PHASES = {
    KIND_CEST: (PHASE_INITIATION, PHASE_IMPLEMENTATION, PHASE_MONITORING),
    KIND_SETUP: (PHASE_INITIATION, PHASE_IMPLEMENTATION),
}

# Documents shown inline per row before collapsing into "+N more"
INLINE_DOC_LIMIT = 3

ROW_DOCUMENT = "document"
ROW_DROPDOWN = "dropdown"
ROW_SECTION = "section"
ROW_NOTE = "note"


def _doc(row_id, label):
    return {"id": row_id, "label": label, "type": ROW_DOCUMENT}


def _dropdown(row_id, label):
    return {"id": row_id, "label": label, "type": ROW_DROPDOWN}


def _section(label):
    return {"id": 0, "label": label, "type": ROW_SECTION}


def _note(label):
    return {"id": 0, "label": label, "type": ROW_NOTE}


# ═════════════════════════════════════════════════════════════════════════════
# CEST templates
# ═════════════════════════════════════════════════════════════════════════════

_CEST_INITIATION = (
    _doc(1, "Letter of Intent"),
    _doc(2, "Special Order"),
    _doc(3, "Endorsement of Project"),
    _doc(4, "Board Resolution"),
    _doc(5, "MOA Form"),
    _doc(6, "Site Visit"),
    _doc(7, "Beneficiary Profile"),
    _doc(8, "Form E"),
    _doc(9, "Form 4"),
    _doc(10, "Form 6"),
    _doc(11, "Special Question Sheet"),
    _doc(12, "Review and Evaluation Report"),
    _doc(13, "List of Intervention"),
)

_CEST_IMPLEMENTATION = (
    _doc(1, "MOA/MOU"),
    _doc(2, "Approval Letter"),
    _doc(3, "MOAFR to LGU Chairperson"),
)

_CEST_MONITORING = (
    _doc(1, "Quarterly Process Report"),
    _doc(2, "List of Personnel Involved"),
    _doc(3, "List of Equipment Purchased"),
    _doc(4, "Report of Disaster Encountered"),
    _doc(5, "Terminal Audited Financial Report"),
    _doc(6, "Recommendation to the LCE"),
)


# ═════════════════════════════════════════════════════════════════════════════
# SETUP templates
# ═════════════════════════════════════════════════════════════════════════════

_SETUP_INITIATION = (
    _dropdown(1, "Cover Sheet (Quotation)"),
    _doc(2, "Letter of Intent"),
    _doc(3, "DTI Registration"),
    _doc(4, "Business Permit"),
    _doc(5, "Sworn Affidavit of the Assignee(s)"),
    _doc(6, "ARA Certificate of Registration"),
    _doc(7, "BIR Registrar to Operate as Processor"),
    _doc(8, "Marriage Contract"),
    _doc(9, "Bank Specifications"),
    _doc(10, "Notice of Expansion"),
    _doc(11, "TNA Form 1"),
    _doc(12, "TNA Form 2"),
    _note("Note: Notarize all Quotations"),
    _doc(13, "Potential Evaluation"),
    _doc(14, "Internal Evaluation"),
    _doc(15, "Forward Form for Equipment"),
    _doc(16, "GMA Assessment"),
    _section("List of Attachments"),
)

_SETUP_IMPLEMENTATION = (
    _doc(1, "Checklist"),
    _doc(2, "Approval Letter"),
    _doc(3, "Confirmation of Agreement"),
    _section("PHASE 1"),
    _doc(4, "Approved Amount for Release"),
    _doc(5, "Sub-Provincial Sector Approval (SPSA)"),
    _doc(6, "Project Cost"),
    _doc(7, "Authority to Pay, Landed Charges of Equipment, Deposit of Goods"),
    _doc(8, "Official Receipt of DOST Financial Assistance"),
    _doc(9, "Packaging Requirement"),
    _section("MIE"),
    _doc(10, "Consumable Purchase Order"),
    _doc(11, "Supplier Recommendation Purchase"),
    _dropdown(12, "Unloading Schedule"),
    _doc(13, "Wholesale Payment for Equipment"),
    _doc(14, "Wholesale Payment for Supplies"),
    _section("DRE"),
    _doc(15, "DRE"),
    _doc(16, "DRE"),
    _section("LIQUIDATION"),
    _doc(17, "Accepted Liquidation"),
    _doc(18, "Annex 1"),
    _doc(19, "Annex 2"),
    _doc(20, "Liquidation Report"),
    _doc(21, "Property Acknowledgement Receipt"),
    _doc(22, "Inspection Report"),
    _section("PHASE 2"),
    _doc(23, "Demand Letter / Notice"),
    _doc(24, "Clearance for Issuance"),
    _doc(25, "List of Inventory of Equipment"),
    _doc(26, "Accepted Liquidation"),
    _doc(27, "Annex 1"),
    _doc(28, "Annex 2"),
    _doc(29, "Liquidation Report"),
    _doc(30, "Property Acknowledgement Receipt"),
    _section("COMPLETION"),
    _doc(31, "Completion Report"),
    _doc(32, "Issuance of Certificate of Ownership"),
    _doc(33, "Completion Report"),
)

CHECKLISTS = {
    KIND_CEST: {
        PHASE_INITIATION: _CEST_INITIATION,
        PHASE_IMPLEMENTATION: _CEST_IMPLEMENTATION,
        PHASE_MONITORING: _CEST_MONITORING,
    },
    KIND_SETUP: {
        PHASE_INITIATION: _SETUP_INITIATION,
        PHASE_IMPLEMENTATION: _SETUP_IMPLEMENTATION,
    },
}


# ═════════════════════════════════════════════════════════════════════════════
# Lookups & validation
# ═════════════════════════════════════════════════════════════════════════════

def get_checklist(kind: str, phase: str) -> tuple:
    try:
        return CHECKLISTS[kind][phase]
    except KeyError:
        raise ValidationError(
            f"Invalid phase {phase!r} for {kind} projects",
            details={"phase": f"one of {', '.join(KIND_PHASES.get(kind, ()))}"},
        ) from None


def countable_rows(checklist) -> list[dict]:
    return [row for row in checklist if row["id"] > 0]


def template_item_id(phase: str, row_id: int) -> str:
    return f"{phase}-{row_id}"


def validate_phase(kind: str, phase) -> str:
    """Return the normalised phase or raise ``ValidationError``."""
    if not phase:
        raise ValidationError("phase is required", details={"phase": "required"})
    phase = str(phase).strip().upper()
    get_checklist(kind, phase)
    return phase


def validate_template_item_id(phase: str, value) -> str | None:
    """
    Check that *value* is ``{phase}-{integer}``.

    ``None``/empty means an unassigned upload.  An integer that matches no
    checklist row is accepted; such a document is never counted.
    """
    if value is None or str(value).strip() == "":
        return None
    value = str(value).strip()
    if not re.fullmatch(rf"{re.escape(phase)}-[0-9]+", value):
        raise ValidationError(
            f"templateItemId must look like {phase}-<row number>",
            details={"templateItemId": value},
        )
    return value


# ═════════════════════════════════════════════════════════════════════════════
# Progress
# ═════════════════════════════════════════════════════════════════════════════

def percent_half_up(part: int, total: int) -> int:
    """Whole percentage of part/total, rounded half-up; 0 when total is 0."""
    if total <= 0:
        return 0
    return (part * 200 + total) // (2 * total)


def compute_progress(phase: str, checklist, documents) -> dict:
    """
    Count the checklist rows of *phase* that have at least one document.

    *documents* is any iterable of objects with a ``template_item_id``.
    """
    present = {doc.template_item_id for doc in documents if doc.template_item_id}
    rows = countable_rows(checklist)
    uploaded = sum(1 for row in rows if template_item_id(phase, row["id"]) in present)
    return {
        "phase": phase,
        "uploaded": uploaded,
        "total": len(rows),
        "percent": percent_half_up(uploaded, len(rows)),
    }


def project_progress(kind: str, documents) -> dict:
    """Progress for every phase of *kind*, keyed by phase."""
    documents = list(documents)
    return {
        phase: compute_progress(phase, CHECKLISTS[kind][phase], documents)
        for phase in KIND_PHASES[kind]
    }


def build_checklist_view(kind: str, phase: str, documents) -> dict:
    """
    Rows of one phase with their matching documents.

    *documents* must already be ordered most recent first; each countable
    row lists the first ``INLINE_DOC_LIMIT`` and reports the remainder as
    ``moreCount``.
    """
    checklist = get_checklist(kind, phase)
    by_item = defaultdict(list)
    for doc in documents:
        if doc.template_item_id:
            by_item[doc.template_item_id].append(doc)

    rows = []
    for row in checklist:
        entry = {"id": row["id"], "label": row["label"], "type": row["type"]}
        if row["id"] > 0:
            item_id = template_item_id(phase, row["id"])
            docs = by_item.get(item_id, [])
            entry.update({
                "templateItemId": item_id,
                "uploaded": bool(docs),
                "documentCount": len(docs),
                "documents": [d.to_dict() for d in docs[:INLINE_DOC_LIMIT]],
                "moreCount": max(0, len(docs) - INLINE_DOC_LIMIT),
            })
        rows.append(entry)

    progress = compute_progress(phase, checklist, documents)
    return {"phase": phase, "rows": rows, "progress": progress}
