# Overview: Catalog store interface plus SQL and in-memory implementations.

"""
CatalogStore: the only path through which order logic reads templates and
batches and decrements batch stock.

Stock invariants (authoritative):
- current_stock_quantity never goes negative.
- decrement_stock is an atomic compare-and-decrement: it succeeds only if
  the live stock is >= the requested quantity at the moment of the write,
  otherwise it raises InsufficientStockError carrying the live value.
- Validation (compute_order) and commit (decrement) are separate steps;
  the compare-and-decrement is what keeps two orders that both validated
  against the same stock from oversubscribing it.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from ..extensions import db
from ..models import ProductTemplate, ProductBatch
from .concurrency import lock_for_update
from .order_errors import InsufficientStockError, UnknownBatchError


@dataclass
class CatalogTemplate:
    """Plain template record for in-memory catalogs."""
    id: str
    name: str
    strain_type: str = "Other"
    product_category: str = "Other"
    unit_of_measure: str = "Each"
    supplier: str = ""
    is_active: bool = True


@dataclass
class CatalogBatch:
    """Plain batch record for in-memory catalogs."""
    id: str
    template_id: str
    metrc_package_id: str
    wholesale_price_cents: int
    current_stock_quantity: int
    thc_percentage: float = 0.0
    cbd_percentage: float = 0.0
    is_active: bool = True
    production_date: date | None = None
    expiration_date: date | None = None


class CatalogStore(ABC):
    """Read access to templates/batches plus the stock decrement primitive."""

    @abstractmethod
    def get_template(self, template_id):
        """Return the template or None."""

    @abstractmethod
    def get_batch(self, batch_id):
        """Return the batch or None."""

    @abstractmethod
    def list_batches(self, template_id=None) -> list:
        """All batches, or only those of template_id."""

    @abstractmethod
    def decrement_stock(self, batch_id, quantity: int) -> int:
        """
        Atomically subtract quantity from the batch stock.

        Returns the remaining stock. Raises UnknownBatchError or
        InsufficientStockError (leaving stock unchanged).
        """

    @abstractmethod
    def restore_stock(self, batch_id, quantity: int) -> None:
        """Give back a decrement after a later one in the same order failed."""


class InMemoryCatalogStore(CatalogStore):
    """
    Dict-backed catalog.

    A single lock guards every stock mutation so the compare and the
    decrement cannot interleave between threads.
    """

    def __init__(self, templates: Iterable = (), batches: Iterable = ()):
        self._templates = {t.id: t for t in templates}
        self._batches = {b.id: b for b in batches}
        self._lock = threading.Lock()

    def get_template(self, template_id):
        return self._templates.get(template_id)

    def get_batch(self, batch_id):
        return self._batches.get(batch_id)

    def list_batches(self, template_id=None) -> list:
        batches = list(self._batches.values())
        if template_id is None:
            return batches
        return [b for b in batches if b.template_id == template_id]

    def decrement_stock(self, batch_id, quantity: int) -> int:
        with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None:
                raise UnknownBatchError(batch_id)
            available = batch.current_stock_quantity
            if quantity > available:
                raise InsufficientStockError(batch_id, quantity, available)
            batch.current_stock_quantity = available - quantity
            return batch.current_stock_quantity

    def restore_stock(self, batch_id, quantity: int) -> None:
        with self._lock:
            batch = self._batches[batch_id]
            batch.current_stock_quantity += quantity


class SqlCatalogStore(CatalogStore):
    """
    Catalog backed by the product_templates / product_batches tables.

    Works inside the caller's session transaction; it never commits.
    """

    def __init__(self, *, lock_rows: bool = False):
        self.lock_rows = lock_rows

    def get_template(self, template_id):
        return db.session.get(ProductTemplate, template_id)

    def get_batch(self, batch_id):
        if self.lock_rows:
            return lock_for_update(
                db.session.query(ProductBatch).filter_by(id=batch_id)
            ).first()
        return db.session.get(ProductBatch, batch_id)

    def list_batches(self, template_id=None) -> list:
        query = db.session.query(ProductBatch)
        if template_id is not None:
            query = query.filter(ProductBatch.template_id == template_id)
        return query.order_by(ProductBatch.created_at.asc(), ProductBatch.id.asc()).all()

    def decrement_stock(self, batch_id, quantity: int) -> int:
        # Conditional UPDATE: the WHERE clause is the compare, the SET the decrement.
        updated = (
            db.session.query(ProductBatch)
            .filter(
                ProductBatch.id == batch_id,
                ProductBatch.current_stock_quantity >= quantity,
            )
            .update(
                {
                    ProductBatch.current_stock_quantity: ProductBatch.current_stock_quantity - quantity,
                    ProductBatch.version_id: ProductBatch.version_id + 1,
                },
                synchronize_session=False,
            )
        )

        batch = db.session.get(ProductBatch, batch_id)
        if batch is None:
            raise UnknownBatchError(batch_id)
        db.session.refresh(batch)

        if updated != 1:
            raise InsufficientStockError(batch_id, quantity, batch.current_stock_quantity)
        return batch.current_stock_quantity

    def restore_stock(self, batch_id, quantity: int) -> None:
        # Undone by the caller's transaction rollback
        return None
