# Overview: Flask API routes for product templates, batches and rollups.

"""
Product catalog routes.

- Reads require VIEW_CATALOG
- Writes require MANAGE_PRODUCTS
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..models import ProductBatch, ProductTemplate
from ..services import products_service
from ..services.rollup_service import rollup_for_template
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_batch,
    enforce_rules_template,
    validate_payload,
)

TEMPLATE_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.TEMPLATE_MUTABLE_FIELDS),
    required_on_create={"name", "strain_type", "product_category", "unit_of_measure", "supplier"},
)

BATCH_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.BATCH_MUTABLE_FIELDS),
    required_on_create={
        "metrc_package_id", "thc_percentage", "cbd_percentage",
        "wholesale_price_cents", "current_stock_quantity",
    },
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _pop_client_id(payload: dict) -> str | None:
    client_id = payload.pop("id", None)
    if client_id is None:
        return None
    client_id = str(client_id).strip()
    if not client_id or len(client_id) > 64:
        raise ValidationError("id must be 1-64 characters")
    return client_id


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_templates_route():
    """
    List templates with their rollups.

    Query params:
    - active_only: "true" to hide inactive templates
    - product_category: exact category filter
    - page / per_page: optional pagination (per_page default 20, max 100)
    """
    return products_service.list_catalog(
        active_only=request.args.get("active_only", "").lower() in ("1", "true", "yes"),
        product_category=request.args.get("product_category") or None,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_template_route():
    payload = dict(request.get_json(silent=True) or {})
    try:
        template_id = _pop_client_id(payload)
        patch = validate_payload(model=ProductTemplate, payload=payload, policy=TEMPLATE_POLICY, partial=False)
        enforce_rules_template(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        template = products_service.create_template(patch=patch, template_id=template_id)
    except ConflictError as e:
        return {"error": str(e)}, 409

    return template.to_dict(), 201


@products_bp.get("/<template_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_template_route(template_id: str):
    try:
        return products_service.template_detail(template_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.get("/<template_id>/rollup")
@require_auth
@require_permission("VIEW_CATALOG")
def template_rollup_route(template_id: str):
    try:
        template = products_service.get_template(template_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return rollup_for_template(template.id, template.batches).to_dict()


@products_bp.patch("/<template_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_template_route(template_id: str):
    payload = request.get_json(silent=True) or {}
    if "id" in payload:
        return {"error": "Template id cannot be changed"}, 400
    try:
        patch = validate_payload(model=ProductTemplate, payload=payload, policy=TEMPLATE_POLICY, partial=True)
        enforce_rules_template(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        template = products_service.update_template(template_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return template.to_dict()


@products_bp.delete("/<template_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_template_route(template_id: str):
    try:
        products_service.delete_template(template_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"status": "deleted", "id": template_id}


@products_bp.post("/<template_id>/batches")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_batch_route(template_id: str):
    payload = dict(request.get_json(silent=True) or {})
    try:
        batch_id = _pop_client_id(payload)
        patch = validate_payload(model=ProductBatch, payload=payload, policy=BATCH_POLICY, partial=False)
        enforce_rules_batch(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        batch = products_service.create_batch(template_id=template_id, patch=patch, batch_id=batch_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return batch.to_dict(), 201


@products_bp.patch("/<template_id>/batches/<batch_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_batch_route(template_id: str, batch_id: str):
    payload = request.get_json(silent=True) or {}
    if "id" in payload or "template_id" in payload:
        return {"error": "Batch id and template cannot be changed"}, 400
    try:
        existing = products_service.get_batch(template_id, batch_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    try:
        patch = validate_payload(model=ProductBatch, payload=payload, policy=BATCH_POLICY, partial=True)
        enforce_rules_batch(patch, existing=existing)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        batch = products_service.update_batch(template_id, batch_id, patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    return batch.to_dict()


@products_bp.delete("/<template_id>/batches/<batch_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_batch_route(template_id: str, batch_id: str):
    try:
        products_service.delete_batch(template_id, batch_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"status": "deleted", "id": batch_id}
