# Overview: Flask API routes for dispensary clients and prospects.

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..models import Dispensary
from ..services import dispensary_service
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_dispensary,
    validate_payload,
)

DISPENSARY_POLICY = ModelValidationPolicy(
    writable_fields=set(dispensary_service.DISPENSARY_MUTABLE_FIELDS),
    required_on_create={"name", "license_number"},
)

dispensaries_bp = Blueprint("dispensaries", __name__, url_prefix="/api/dispensaries")


@dispensaries_bp.get("")
@require_auth
@require_permission("VIEW_DISPENSARIES")
def list_dispensaries_route():
    items = dispensary_service.list_dispensaries(request.args.get("search") or None)
    return {"items": [d.to_dict() for d in items], "count": len(items)}


@dispensaries_bp.post("")
@require_auth
@require_permission("MANAGE_DISPENSARIES")
def create_dispensary_route():
    payload = dict(request.get_json(silent=True) or {})
    dispensary_id = payload.pop("id", None)
    try:
        patch = validate_payload(model=Dispensary, payload=payload, policy=DISPENSARY_POLICY, partial=False)
        enforce_rules_dispensary(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        dispensary = dispensary_service.create_dispensary(
            patch=patch,
            dispensary_id=str(dispensary_id).strip() if dispensary_id else None,
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    return dispensary.to_dict(), 201


@dispensaries_bp.get("/<dispensary_id>")
@require_auth
@require_permission("VIEW_DISPENSARIES")
def get_dispensary_route(dispensary_id: str):
    try:
        return dispensary_service.get_dispensary(dispensary_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@dispensaries_bp.patch("/<dispensary_id>")
@require_auth
@require_permission("MANAGE_DISPENSARIES")
def update_dispensary_route(dispensary_id: str):
    payload = request.get_json(silent=True) or {}
    if "id" in payload:
        return {"error": "Dispensary id cannot be changed"}, 400
    try:
        patch = validate_payload(model=Dispensary, payload=payload, policy=DISPENSARY_POLICY, partial=True)
        enforce_rules_dispensary(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        dispensary = dispensary_service.update_dispensary(dispensary_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return dispensary.to_dict()


@dispensaries_bp.delete("/<dispensary_id>")
@require_auth
@require_permission("MANAGE_DISPENSARIES")
def delete_dispensary_route(dispensary_id: str):
    try:
        dispensary_service.delete_dispensary(dispensary_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"status": "deleted", "id": dispensary_id}
