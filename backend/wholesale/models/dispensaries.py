from __future__ import annotations

from ..extensions import db
from wholesale.time_utils import to_utc_z


class Dispensary(db.Model):
    """Licensed dispensary client (or prospect) that wholesale orders ship to."""
    __tablename__ = "dispensaries"
    __table_args__ = (
        db.UniqueConstraint("license_number", name="uq_dispensaries_license"),
    )

    id = db.Column(db.String(64), primary_key=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    license_number = db.Column(db.String(64), nullable=False)

    contact_person = db.Column(db.String(255), nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(512), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Dispensary id={self.id!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "license_number": self.license_number,
            "contact_person": self.contact_person,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "address": self.address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
