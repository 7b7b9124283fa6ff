from __future__ import annotations

from ..extensions import db
from wholesale.time_utils import to_utc_z, to_iso_date


PAYMENT_METHODS = ("Cash", "Credit Card", "Debit Card", "ACH", "Check", "Other")
PAYMENT_TERMS = ("Net 15", "Net 30", "Net 60", "Due on Receipt", "Prepaid")

PAYMENT_PENDING = "Pending"
PAYMENT_PAID = "Paid"
PAYMENT_PARTIALLY_PAID = "Partially Paid"
PAYMENT_OVERDUE = "Overdue"
PAYMENT_CANCELLED = "Cancelled"
PAYMENT_STATUSES = (
    PAYMENT_PENDING,
    PAYMENT_PAID,
    PAYMENT_PARTIALLY_PAID,
    PAYMENT_OVERDUE,
    PAYMENT_CANCELLED,
)


class WholesaleOrder(db.Model):
    """
    Wholesale order document.

    Created atomically from a validated line-item list together with the
    stock decrements it implies. Immutable afterwards except for
    payment_status transitions.
    """
    __tablename__ = "wholesale_orders"
    __table_args__ = (
        db.Index("ix_wholesale_orders_dispensary_date", "dispensary_id", "ordered_at"),
        db.Index("ix_wholesale_orders_status_date", "payment_status", "ordered_at"),
    )

    id = db.Column(db.String(64), primary_key=True)

    ordered_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    dispensary_id = db.Column(db.String(64), db.ForeignKey("dispensaries.id"), nullable=False, index=True)
    sales_associate_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Sum of line subtotals (cents)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_terms = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_PENDING, index=True)

    notes = db.Column(db.Text, nullable=True)
    shipment_date = db.Column(db.Date, nullable=True)
    tracking_number = db.Column(db.String(128), nullable=True)
    metrc_manifest_id = db.Column(db.String(64), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    dispensary = db.relationship("Dispensary", backref=db.backref("orders", lazy=True))
    sales_associate = db.relationship("User")
    lines = db.relationship(
        "WholesaleOrderLine",
        backref="order",
        lazy=True,
        order_by="WholesaleOrderLine.line_number",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "ordered_at": to_utc_z(self.ordered_at),
            "dispensary_id": self.dispensary_id,
            "dispensary_name": self.dispensary.name if self.dispensary else None,
            "sales_associate_id": self.sales_associate_id,
            "sales_associate_name": self.sales_associate.username if self.sales_associate else None,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "payment_terms": self.payment_terms,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "shipment_date": to_iso_date(self.shipment_date),
            "tracking_number": self.tracking_number,
            "metrc_manifest_id": self.metrc_manifest_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class WholesaleOrderLine(db.Model):
    """
    Priced line of a wholesale order.

    Product name, METRC id, unit price and potency are copied from the
    template/batch when the order is placed and never looked up again.
    """
    __tablename__ = "wholesale_order_lines"
    __table_args__ = (
        db.UniqueConstraint("order_id", "line_number", name="uq_order_lines_order_line"),
        db.CheckConstraint("quantity >= 1", name="ck_order_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(64), db.ForeignKey("wholesale_orders.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    template_id = db.Column(db.String(64), db.ForeignKey("product_templates.id"), nullable=False, index=True)
    batch_id = db.Column(db.String(64), db.ForeignKey("product_batches.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    batch_metrc_package_id = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    thc_percentage_at_sale = db.Column(db.Float, nullable=True)
    cbd_percentage_at_sale = db.Column(db.Float, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "line_number": self.line_number,
            "template_id": self.template_id,
            "batch_id": self.batch_id,
            "product_name": self.product_name,
            "batch_metrc_package_id": self.batch_metrc_package_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "thc_percentage_at_sale": self.thc_percentage_at_sale,
            "cbd_percentage_at_sale": self.cbd_percentage_at_sale,
        }
