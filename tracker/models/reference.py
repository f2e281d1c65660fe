"""Reference data: provinces for address pickers."""

from tracker.models import db


NORTHERN_MINDANAO_PROVINCES = (
    "Bukidnon",
    "Camiguin",
    "Lanao del Norte",
    "Misamis Occidental",
    "Misamis Oriental",
)


class Province(db.Model):
    __tablename__ = "provinces"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)

    def to_dict(self):
        return {"id": self.id, "name": self.name}


def seed_provinces(names=NORTHERN_MINDANAO_PROVINCES):
    """Insert any missing provinces. Returns the number created (not committed)."""
    existing = {p.name for p in Province.query.all()}
    created = 0
    for name in names:
        if name not in existing:
            db.session.add(Province(name=name))
            created += 1
    return created
