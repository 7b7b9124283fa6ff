# Overview: Per-template rollups (stock and potency) over the batch collection.

"""
Catalog rollups (derived, never stored).

For a template T and a batch collection B:
- qualifying = batches of T that are active AND have stock > 0
- total_stock = sum(qualifying.current_stock_quantity)
- avg_thc / avg_cbd = unweighted arithmetic mean over qualifying, or None
  when qualifying is empty ("not applicable", never 0)
- active_batch_count = batches of T that are active, regardless of stock

The mean is not stock-weighted (one vote per qualifying batch).
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Iterable


@dataclass(frozen=True)
class CatalogRollup:
    template_id: str
    total_stock: int
    avg_thc: float | None
    avg_cbd: float | None
    active_batch_count: int

    @property
    def has_active_stocked_batches(self) -> bool:
        return self.avg_thc is not None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["has_active_stocked_batches"] = self.has_active_stocked_batches
        return data


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def rollup_for_template(template_id, all_batches: Iterable) -> CatalogRollup:
    """Compute the rollup of template_id over all_batches (any template)."""
    batches = [b for b in all_batches if b.template_id == template_id]
    qualifying = [b for b in batches if b.is_active and b.current_stock_quantity > 0]

    return CatalogRollup(
        template_id=template_id,
        total_stock=sum(b.current_stock_quantity for b in qualifying),
        avg_thc=_mean([b.thc_percentage for b in qualifying]),
        avg_cbd=_mean([b.cbd_percentage for b in qualifying]),
        active_batch_count=sum(1 for b in batches if b.is_active),
    )


def rollups_by_template(template_ids: Iterable, all_batches: Iterable) -> dict:
    """Rollups for several templates with one pass to group the batches."""
    grouped: dict = {}
    for batch in all_batches:
        grouped.setdefault(batch.template_id, []).append(batch)
    return {
        template_id: rollup_for_template(template_id, grouped.get(template_id, []))
        for template_id in template_ids
    }
