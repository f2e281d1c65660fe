"""Small parsing and lookup helpers shared by services.

get_or_raise:  primary-key lookup raising ``NotFoundError``
parse_date:    ISO date (or datetime) string to ``date``; None on bad input
parse_bool:    query-string / JSON flag parsing
"""
from datetime import date, datetime

from tracker.core.exceptions import NotFoundError
from tracker.models import db

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def get_or_raise(model, pk, label=None):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return obj


def parse_date(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES
