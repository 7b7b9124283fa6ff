# Overview: Service-layer operations for dispensary clients and prospects.

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Dispensary, WholesaleOrder
from ..validation import ConflictError, NotFoundError
from .identifier_service import generate_id

DISPENSARY_MUTABLE_FIELDS = {
    "name", "license_number", "contact_person", "contact_email",
    "contact_phone", "address", "notes",
}


def list_dispensaries(search: str | None = None) -> list[Dispensary]:
    query = db.session.query(Dispensary)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Dispensary.name.ilike(like),
            Dispensary.license_number.ilike(like),
            Dispensary.contact_person.ilike(like),
        ))
    return query.order_by(Dispensary.name.asc(), Dispensary.id.asc()).all()


def get_dispensary(dispensary_id: str) -> Dispensary:
    dispensary = db.session.get(Dispensary, dispensary_id)
    if dispensary is None:
        raise NotFoundError("Dispensary not found")
    return dispensary


def _require_unique_license(license_number: str | None, *, exclude_id: str | None = None) -> None:
    if not license_number:
        return
    query = db.session.query(Dispensary.id).filter(Dispensary.license_number == license_number)
    if exclude_id:
        query = query.filter(Dispensary.id != exclude_id)
    if query.first():
        raise ConflictError(f"License number {license_number} is already registered")


def create_dispensary(*, patch: dict, dispensary_id: str | None = None) -> Dispensary:
    dispensary_id = dispensary_id or generate_id("disp")
    if db.session.get(Dispensary, dispensary_id) is not None:
        raise ConflictError(f"Dispensary {dispensary_id} already exists")
    _require_unique_license(patch.get("license_number"))

    dispensary = Dispensary(id=dispensary_id)
    for k, v in patch.items():
        if k in DISPENSARY_MUTABLE_FIELDS:
            setattr(dispensary, k, v)
    db.session.add(dispensary)
    db.session.commit()
    return dispensary


def update_dispensary(dispensary_id: str, patch: dict) -> Dispensary:
    dispensary = get_dispensary(dispensary_id)
    _require_unique_license(patch.get("license_number"), exclude_id=dispensary_id)
    for k, v in patch.items():
        if k in DISPENSARY_MUTABLE_FIELDS:
            setattr(dispensary, k, v)
    db.session.commit()
    return dispensary


def delete_dispensary(dispensary_id: str) -> None:
    dispensary = get_dispensary(dispensary_id)
    if db.session.query(WholesaleOrder.id).filter_by(dispensary_id=dispensary_id).first():
        raise ConflictError("Dispensary has orders and cannot be deleted")
    db.session.delete(dispensary)
    db.session.commit()
