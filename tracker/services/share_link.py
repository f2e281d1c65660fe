"""
DOST Project Tracker
PIN-gated document share links.

A document is UNLOCKED while ``qr_pin`` is null (anyone with the link gets
the file) and LOCKED while it holds a 4-digit PIN that the viewer must
supply.  Attempt throttling is applied at the route.
"""

import hmac
import logging
import re

from sqlalchemy.orm import undefer

from tracker.core.exceptions import InvalidPinError, NotFoundError, ValidationError
from tracker.models import db
from tracker.models.document import ProjectDocument

logger = logging.getLogger(__name__)

_PIN_RE = re.compile(r"[0-9]{4}")


def get_document(doc_id, with_data=False):
    q = ProjectDocument.query.filter_by(id=doc_id)
    if with_data:
        q = q.options(undefer(ProjectDocument.file_data))
    doc = q.first()
    if doc is None:
        raise NotFoundError("Document", doc_id)
    return doc


def get_doc_meta(doc_id) -> dict:
    """``{id, fileName, mimeType, hasPin}``; the payload column is not loaded."""
    return get_document(doc_id).to_meta()


def pin_matches(stored, supplied) -> bool:
    if stored is None:
        return True
    if not isinstance(supplied, str):
        return False
    return hmac.compare_digest(stored.encode("ascii"), supplied.encode("utf-8"))


def verify_and_serve(doc_id, supplied_pin):
    """
    Return the document with its payload loaded, if *supplied_pin* unlocks it.

    Raises:
        NotFoundError: no such document, or it has no stored content.
        InvalidPinError: the document is locked and the PIN does not match.
    """
    doc = get_document(doc_id, with_data=True)
    if not doc.file_data:
        raise NotFoundError("Document", doc_id, message="Document content not found")
    if not pin_matches(doc.qr_pin, supplied_pin):
        raise InvalidPinError(doc_id)
    return doc


def validate_pin(pin):
    """Return *pin* if it is exactly 4 ASCII digits or None, else raise."""
    if pin is None:
        return None
    if not isinstance(pin, str) or not _PIN_RE.fullmatch(pin):
        raise ValidationError("PIN must be exactly 4 digits", details={"pin": "4 digits or null"})
    return pin


def set_pin(doc_id, pin) -> dict:
    """Set (4 digits) or clear (None) the PIN of a document."""
    pin = validate_pin(pin)
    doc = get_document(doc_id)
    doc.qr_pin = pin
    db.session.commit()
    logger.info("Share PIN %s: doc=%s", "set" if pin else "cleared", doc_id)
    return {"id": doc.id, "fileName": doc.file_name, "hasPin": doc.has_pin}
