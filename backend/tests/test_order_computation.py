"""
Order computation tests against an in-memory catalog.

Covers validation order, pricing to the cent, all-or-nothing behaviour
and stock decrements.
"""

import pytest

from wholesale.services.catalog_store import (
    CatalogBatch,
    CatalogStore,
    CatalogTemplate,
    InMemoryCatalogStore,
)
from wholesale.services.order_errors import (
    BatchInactiveError,
    BatchTemplateMismatchError,
    EmptyOrderError,
    InsufficientStockError,
    InvalidQuantityError,
    UnknownBatchError,
    UnknownTemplateError,
)
from wholesale.services.order_service import (
    OrderLineItem,
    apply_stock_decrements,
    compute_order,
    parse_line_items,
)


@pytest.fixture
def store():
    return InMemoryCatalogStore(
        templates=[
            CatalogTemplate(id="flower", name="Green Crack Flower", strain_type="Sativa",
                            product_category="Flower", unit_of_measure="Grams"),
            CatalogTemplate(id="gummies", name="CBD Gummies (10mg)", strain_type="CBD",
                            product_category="Edibles"),
        ],
        batches=[
            CatalogBatch(id="b-10", template_id="flower", metrc_package_id="PKG-A",
                         wholesale_price_cents=800, current_stock_quantity=10,
                         thc_percentage=22.5, cbd_percentage=0.5),
            CatalogBatch(id="b-3", template_id="flower", metrc_package_id="PKG-B",
                         wholesale_price_cents=800, current_stock_quantity=3),
            CatalogBatch(id="g-1", template_id="gummies", metrc_package_id="PKG-C",
                         wholesale_price_cents=150, current_stock_quantity=2000,
                         thc_percentage=0.2, cbd_percentage=10.0),
            CatalogBatch(id="g-off", template_id="gummies", metrc_package_id="PKG-D",
                         wholesale_price_cents=175, current_stock_quantity=40, is_active=False),
        ],
    )


def _stock(store):
    return {b.id: b.current_stock_quantity for b in store.list_batches()}


def _fixed_id():
    return "order-test"


class TestComputeOrder:

    def test_single_line_priced_and_decremented(self, store):
        computed = compute_order([OrderLineItem("flower", "b-10", 5)], store, order_id_factory=_fixed_id)

        assert computed.order_id == "order-test"
        assert len(computed.lines) == 1
        line = computed.lines[0]
        assert line.subtotal_cents == 4000
        assert line.unit_price_cents == 800
        assert line.product_name == "Green Crack Flower"
        assert line.batch_metrc_package_id == "PKG-A"
        assert line.thc_percentage_at_sale == 22.5
        assert computed.total_amount_cents == 4000
        assert computed.stock_decrements == {"b-10": 5}

        # Nothing written until the decrement is applied
        assert store.get_batch("b-10").current_stock_quantity == 10
        remaining = apply_stock_decrements(computed, store)
        assert remaining == {"b-10": 5}
        assert store.get_batch("b-10").current_stock_quantity == 5

    def test_insufficient_stock_reports_requested_and_available(self, store):
        with pytest.raises(InsufficientStockError) as exc:
            compute_order([OrderLineItem("flower", "b-3", 5)], store)

        assert exc.value.batch_id == "b-3"
        assert exc.value.requested == 5
        assert exc.value.available == 3
        assert exc.value.to_dict()["code"] == "INSUFFICIENT_STOCK"
        assert store.get_batch("b-3").current_stock_quantity == 3

    def test_total_is_sum_of_cent_subtotals(self, store):
        computed = compute_order(
            [
                OrderLineItem("flower", "b-10", 3),
                OrderLineItem("gummies", "g-1", 7),
            ],
            store,
        )
        assert [line.subtotal_cents for line in computed.lines] == [2400, 1050]
        assert computed.total_amount_cents == 3450

    def test_empty_order(self, store):
        with pytest.raises(EmptyOrderError):
            compute_order([], store)

    def test_unknown_template(self, store):
        with pytest.raises(UnknownTemplateError):
            compute_order([OrderLineItem("nope", "b-10", 1)], store)

    def test_unknown_batch(self, store):
        with pytest.raises(UnknownBatchError):
            compute_order([OrderLineItem("flower", "nope", 1)], store)

    def test_batch_of_another_template(self, store):
        with pytest.raises(BatchTemplateMismatchError) as exc:
            compute_order([OrderLineItem("flower", "g-1", 1)], store)
        assert exc.value.details["batch_template_id"] == "gummies"

    def test_inactive_batch_rejected(self, store):
        with pytest.raises(BatchInactiveError):
            compute_order([OrderLineItem("gummies", "g-off", 1)], store)

    @pytest.mark.parametrize("quantity", [0, -2, 2.5, "3", None, True])
    def test_invalid_quantities(self, store, quantity):
        with pytest.raises(InvalidQuantityError):
            compute_order([OrderLineItem("flower", "b-10", quantity)], store)

    def test_fractional_quantity_over_stock_is_a_stock_error(self, store):
        with pytest.raises(InsufficientStockError):
            compute_order([OrderLineItem("flower", "b-3", 3.5)], store)

    def test_first_failing_line_wins(self, store):
        with pytest.raises(UnknownTemplateError):
            compute_order(
                [
                    OrderLineItem("flower", "b-3", 50),
                    OrderLineItem("missing", "b-10", 1),
                ],
                store,
            )

    def test_stock_checked_on_every_line_before_quantity(self, store):
        with pytest.raises(InsufficientStockError) as exc:
            compute_order(
                [
                    OrderLineItem("flower", "b-10", 0),
                    OrderLineItem("flower", "b-3", 50),
                ],
                store,
            )
        assert exc.value.batch_id == "b-3"

    @pytest.mark.parametrize("template_id", [["flower", "b-10"], {"id": "flower"}, 7, None, "  "])
    def test_non_string_template_id(self, store, template_id):
        with pytest.raises(UnknownTemplateError):
            compute_order([OrderLineItem(template_id, "b-10", 1)], store)

    @pytest.mark.parametrize("batch_id", [["b-10"], {"id": "b-10"}, 10, None, ""])
    def test_non_string_batch_id(self, store, batch_id):
        with pytest.raises(UnknownBatchError):
            compute_order([OrderLineItem("flower", batch_id, 1)], store)

    def test_same_batch_on_two_lines_is_checked_cumulatively(self, store):
        with pytest.raises(InsufficientStockError) as exc:
            compute_order(
                [
                    OrderLineItem("flower", "b-3", 2),
                    OrderLineItem("flower", "b-3", 2),
                ],
                store,
            )
        assert exc.value.requested == 4
        assert exc.value.available == 3

    def test_same_batch_decrements_are_merged(self, store):
        computed = compute_order(
            [
                OrderLineItem("flower", "b-10", 2),
                OrderLineItem("flower", "b-10", 3),
            ],
            store,
        )
        assert len(computed.lines) == 2
        assert computed.stock_decrements == {"b-10": 5}

    def test_failed_validation_leaves_catalog_untouched(self, store):
        before = _stock(store)
        with pytest.raises(InsufficientStockError):
            compute_order(
                [
                    OrderLineItem("flower", "b-10", 5),
                    OrderLineItem("gummies", "g-1", 5000),
                ],
                store,
            )
        assert _stock(store) == before


class TestApplyStockDecrements:

    def test_decrements_exactly_the_ordered_quantities(self, store):
        before = _stock(store)
        computed = compute_order(
            [
                OrderLineItem("flower", "b-10", 4),
                OrderLineItem("gummies", "g-1", 100),
            ],
            store,
        )
        apply_stock_decrements(computed, store)

        after = _stock(store)
        assert after["b-10"] == before["b-10"] - 4
        assert after["g-1"] == before["g-1"] - 100
        assert after["b-3"] == before["b-3"]
        assert all(qty >= 0 for qty in after.values())

    def test_partial_failure_restores_applied_decrements(self, store):
        computed = compute_order(
            [
                OrderLineItem("flower", "b-10", 4),
                OrderLineItem("flower", "b-3", 3),
            ],
            store,
        )
        # Stock drops behind the computed order's back
        store.decrement_stock("b-3", 2)

        with pytest.raises(InsufficientStockError):
            apply_stock_decrements(computed, store)

        assert store.get_batch("b-10").current_stock_quantity == 10
        assert store.get_batch("b-3").current_stock_quantity == 1

    def test_restores_run_through_the_store_in_reverse(self, store):
        class RecordingStore(InMemoryCatalogStore):
            def __init__(self, inner):
                super().__init__(
                    templates=[inner.get_template("flower")],
                    batches=inner.list_batches(),
                )
                self.restored = []

            def restore_stock(self, batch_id, quantity):
                self.restored.append((batch_id, quantity))
                super().restore_stock(batch_id, quantity)

        recording = RecordingStore(store)
        computed = compute_order(
            [
                OrderLineItem("flower", "b-10", 1),
                OrderLineItem("flower", "b-3", 3),
            ],
            recording,
        )
        recording.decrement_stock("b-3", 1)

        with pytest.raises(InsufficientStockError):
            apply_stock_decrements(computed, recording)
        assert recording.restored == [("b-10", 1)]

    def test_store_must_define_restore_stock(self):
        class NoRestoreStore(CatalogStore):
            def get_template(self, template_id):
                return None

            def get_batch(self, batch_id):
                return None

            def list_batches(self, template_id=None):
                return []

            def decrement_stock(self, batch_id, quantity):
                return 0

        with pytest.raises(TypeError):
            NoRestoreStore()

    def test_decrement_never_goes_negative(self, store):
        with pytest.raises(InsufficientStockError):
            store.decrement_stock("b-3", 4)
        assert store.get_batch("b-3").current_stock_quantity == 3


class TestParseLineItems:

    def test_builds_line_items(self):
        items = parse_line_items([{"template_id": "flower", "batch_id": "b-10", "quantity": 2}])
        assert items == [OrderLineItem("flower", "b-10", 2)]

    def test_non_list_is_empty_order(self):
        with pytest.raises(EmptyOrderError):
            parse_line_items(None)

    def test_non_object_line(self):
        with pytest.raises(InvalidQuantityError):
            parse_line_items(["flower"])
