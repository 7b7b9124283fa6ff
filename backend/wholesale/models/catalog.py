from __future__ import annotations

from ..extensions import db
from wholesale.time_utils import to_utc_z, to_iso_date


STRAIN_TYPES = ("Indica", "Sativa", "Hybrid", "CBD", "Other")
PRODUCT_CATEGORIES = ("Flower", "Concentrates", "Edibles", "Vapes", "Topicals", "Pre-Rolls", "Other")
UNITS_OF_MEASURE = ("Grams", "Ounces", "Each", "Milligrams", "Other")


class ProductTemplate(db.Model):
    """
    Sellable product definition, independent of any harvested/produced lot.

    The id is assigned once at creation and never changes. unit_of_measure
    is inherited unchanged by every ProductBatch of the template.
    """
    __tablename__ = "product_templates"
    __table_args__ = (
        db.Index("ix_product_templates_category_active", "product_category", "is_active"),
    )

    id = db.Column(db.String(64), primary_key=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    strain_type = db.Column(db.String(16), nullable=False)
    product_category = db.Column(db.String(32), nullable=False)
    unit_of_measure = db.Column(db.String(16), nullable=False)
    supplier = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<ProductTemplate id={self.id!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "strain_type": self.strain_type,
            "product_category": self.product_category,
            "unit_of_measure": self.unit_of_measure,
            "supplier": self.supplier,
            "description": self.description,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductBatch(db.Model):
    """
    A traceable lot of a ProductTemplate, tracked by its METRC package id.

    Stock is a mutable quantity here (unlike a ledger-derived on-hand) and
    is only ever changed through an atomic compare-and-decrement
    (see services.catalog_store) or an explicit batch edit.
    A batch is "available" only when is_active AND current_stock_quantity > 0.
    """
    __tablename__ = "product_batches"
    __table_args__ = (
        db.UniqueConstraint("metrc_package_id", name="uq_product_batches_metrc"),
        db.CheckConstraint("current_stock_quantity >= 0", name="ck_product_batches_stock_nonneg"),
        db.CheckConstraint("wholesale_price_cents >= 0", name="ck_product_batches_price_nonneg"),
        db.Index("ix_product_batches_template_active", "template_id", "is_active"),
    )

    id = db.Column(db.String(64), primary_key=True)
    template_id = db.Column(db.String(64), db.ForeignKey("product_templates.id"), nullable=False, index=True)

    metrc_package_id = db.Column(db.String(64), nullable=False)

    thc_percentage = db.Column(db.Float, nullable=False, default=0.0)
    cbd_percentage = db.Column(db.Float, nullable=False, default=0.0)

    # Authoritative storage in cents (frontend may only format for display)
    wholesale_price_cents = db.Column(db.Integer, nullable=False)

    current_stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    production_date = db.Column(db.Date, nullable=True)
    expiration_date = db.Column(db.Date, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    template = db.relationship("ProductTemplate", backref=db.backref("batches", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def unit_of_measure(self) -> str | None:
        return self.template.unit_of_measure if self.template else None

    @property
    def is_available(self) -> bool:
        return bool(self.is_active) and (self.current_stock_quantity or 0) > 0

    def __repr__(self) -> str:
        return (
            f"<ProductBatch id={self.id!r} template_id={self.template_id!r} "
            f"metrc={self.metrc_package_id!r} stock={self.current_stock_quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "template_id": self.template_id,
            "metrc_package_id": self.metrc_package_id,
            "thc_percentage": self.thc_percentage,
            "cbd_percentage": self.cbd_percentage,
            "wholesale_price_cents": self.wholesale_price_cents,
            "current_stock_quantity": self.current_stock_quantity,
            "unit_of_measure": self.unit_of_measure,
            "production_date": to_iso_date(self.production_date),
            "expiration_date": to_iso_date(self.expiration_date),
            "is_active": self.is_active,
            "is_available": self.is_available,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
