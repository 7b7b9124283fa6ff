# backend/wholesale/services/products_service.py
"""
Product catalog service: templates, batches and their rollups.

- Template ids are assigned once (client-supplied or generated) and never change.
- Batches always inherit the template's unit of measure (not stored per batch).
- Templates/batches referenced by order lines cannot be deleted; deactivate them instead.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ProductTemplate, ProductBatch, WholesaleOrderLine
from ..validation import ConflictError, NotFoundError
from .identifier_service import generate_id
from .rollup_service import rollup_for_template, rollups_by_template

TEMPLATE_MUTABLE_FIELDS = {
    "name", "strain_type", "product_category", "unit_of_measure",
    "supplier", "description", "image_url", "is_active",
}
BATCH_MUTABLE_FIELDS = {
    "metrc_package_id", "thc_percentage", "cbd_percentage", "wholesale_price_cents",
    "current_stock_quantity", "production_date", "expiration_date", "is_active",
}


def _apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


def get_template(template_id: str) -> ProductTemplate:
    template = db.session.get(ProductTemplate, template_id)
    if template is None:
        raise NotFoundError("Product template not found")
    return template


def get_batch(template_id: str, batch_id: str) -> ProductBatch:
    batch = db.session.get(ProductBatch, batch_id)
    if batch is None or batch.template_id != template_id:
        raise NotFoundError("Product batch not found")
    return batch


def list_catalog(
    *,
    active_only: bool = False,
    product_category: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Templates with their rollups (total stock, average potency, active batches).

    Args:
        active_only: Only templates flagged active
        product_category: Filter by category
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)
    """
    base_query = db.session.query(ProductTemplate)
    if active_only:
        base_query = base_query.filter(ProductTemplate.is_active.is_(True))
    if product_category:
        base_query = base_query.filter(ProductTemplate.product_category == product_category)
    base_query = base_query.order_by(ProductTemplate.name.asc(), ProductTemplate.id.asc())

    pagination = None
    if page is None:
        templates = base_query.all()
    else:
        per_page = min(per_page or 20, 100)  # Default 20, max 100
        page = max(page, 1)
        total = base_query.count()
        total_pages = (total + per_page - 1) // per_page if total > 0 else 1
        templates = base_query.offset((page - 1) * per_page).limit(per_page).all()
        pagination = {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        }

    template_ids = [t.id for t in templates]
    batches = []
    if template_ids:
        batches = (
            db.session.query(ProductBatch)
            .filter(ProductBatch.template_id.in_(template_ids))
            .all()
        )
    rollups = rollups_by_template(template_ids, batches)

    items = []
    for template in templates:
        data = template.to_dict()
        data["rollup"] = rollups[template.id].to_dict()
        items.append(data)

    result = {"items": items, "count": len(items)}
    if pagination is not None:
        result["pagination"] = pagination
    return result


def template_detail(template_id: str) -> dict:
    template = get_template(template_id)
    batches = (
        db.session.query(ProductBatch)
        .filter_by(template_id=template_id)
        .order_by(ProductBatch.created_at.asc(), ProductBatch.id.asc())
        .all()
    )
    data = template.to_dict()
    data["rollup"] = rollup_for_template(template_id, batches).to_dict()
    data["batches"] = [b.to_dict() for b in batches]
    return data


def create_template(*, patch: dict, template_id: str | None = None) -> ProductTemplate:
    """Create template; the id is generated when not supplied."""
    template_id = template_id or generate_id("tmpl")
    if db.session.get(ProductTemplate, template_id) is not None:
        raise ConflictError(f"Product template {template_id} already exists")

    template = ProductTemplate(id=template_id)
    _apply_patch(template, patch, TEMPLATE_MUTABLE_FIELDS)
    db.session.add(template)
    db.session.commit()
    return template


def update_template(template_id: str, patch: dict) -> ProductTemplate:
    template = get_template(template_id)
    _apply_patch(template, patch, TEMPLATE_MUTABLE_FIELDS)
    db.session.commit()
    return template


def delete_template(template_id: str) -> None:
    template = get_template(template_id)

    has_batches = db.session.query(ProductBatch.id).filter_by(template_id=template_id).first()
    if has_batches:
        raise ConflictError("Product template has batches; delete or deactivate them first")

    has_orders = db.session.query(WholesaleOrderLine.id).filter_by(template_id=template_id).first()
    if has_orders:
        raise ConflictError("Product template is referenced by orders; deactivate it instead")

    db.session.delete(template)
    db.session.commit()


def create_batch(*, template_id: str, patch: dict, batch_id: str | None = None) -> ProductBatch:
    """
    Create a batch under template_id.

    Raises NotFoundError for a missing template and ConflictError when the
    METRC package id is already in use.
    """
    get_template(template_id)
    batch_id = batch_id or generate_id("batch")
    if db.session.get(ProductBatch, batch_id) is not None:
        raise ConflictError(f"Product batch {batch_id} already exists")

    _require_unique_metrc(patch.get("metrc_package_id"))

    batch = ProductBatch(id=batch_id, template_id=template_id)
    _apply_patch(batch, patch, BATCH_MUTABLE_FIELDS)
    db.session.add(batch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Batch violates a catalog constraint (duplicate METRC id or negative stock)")
    return batch


def update_batch(template_id: str, batch_id: str, patch: dict) -> ProductBatch:
    """Edit a batch (price, potency, stock correction, dates, active flag)."""
    batch = get_batch(template_id, batch_id)
    if "metrc_package_id" in patch and patch["metrc_package_id"] != batch.metrc_package_id:
        _require_unique_metrc(patch["metrc_package_id"])

    _apply_patch(batch, patch, BATCH_MUTABLE_FIELDS)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Batch violates a catalog constraint (duplicate METRC id or negative stock)")
    return batch


def delete_batch(template_id: str, batch_id: str) -> None:
    batch = get_batch(template_id, batch_id)
    has_orders = db.session.query(WholesaleOrderLine.id).filter_by(batch_id=batch_id).first()
    if has_orders:
        raise ConflictError("Product batch is referenced by orders; deactivate it instead")
    db.session.delete(batch)
    db.session.commit()


def _require_unique_metrc(metrc_package_id: str | None) -> None:
    if not metrc_package_id:
        return
    exists = db.session.query(ProductBatch.id).filter_by(metrc_package_id=metrc_package_id).first()
    if exists:
        raise ConflictError(f"METRC package id {metrc_package_id} is already assigned to a batch")
