"""Product template and batch routes, including rollups."""

import pytest

from wholesale.models import ProductBatch, ProductTemplate
from wholesale.services.order_service import OrderLineItem, place_order


class TestCatalogReads:

    def test_list_includes_rollups(self, client, db_session, catalog, rep_headers):
        resp = client.get("/api/products", headers=rep_headers)
        assert resp.status_code == 200
        items = {item["id"]: item for item in resp.get_json()["items"]}

        flower = items["prod001"]["rollup"]
        assert flower["total_stock"] == 13
        assert flower["avg_thc"] == pytest.approx(22.0)
        assert flower["avg_cbd"] == pytest.approx(1.0)
        assert flower["active_batch_count"] == 2

        edibles = items["prod002"]["rollup"]
        assert edibles["total_stock"] == 100
        assert edibles["active_batch_count"] == 1

    def test_filter_by_category(self, client, db_session, catalog, rep_headers):
        resp = client.get("/api/products?product_category=Edibles", headers=rep_headers)
        assert [item["id"] for item in resp.get_json()["items"]] == ["prod002"]

    def test_pagination(self, client, db_session, catalog, rep_headers):
        resp = client.get("/api/products?page=1&per_page=1", headers=rep_headers)
        body = resp.get_json()
        assert body["count"] == 1
        assert body["pagination"]["total"] == 2
        assert body["pagination"]["has_next"] is True

    def test_detail_lists_batches(self, client, db_session, catalog, rep_headers):
        resp = client.get("/api/products/prod002", headers=rep_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert sorted(b["id"] for b in body["batches"]) == ["batch003", "batch004"]
        assert body["rollup"]["total_stock"] == 100

    def test_rollup_without_stocked_batches_is_not_applicable(self, client, db_session, catalog, rep_headers):
        for batch in db_session.query(ProductBatch).filter_by(template_id="prod001"):
            batch.current_stock_quantity = 0
        db_session.commit()

        resp = client.get("/api/products/prod001/rollup", headers=rep_headers)
        body = resp.get_json()
        assert body["total_stock"] == 0
        assert body["avg_thc"] is None
        assert body["avg_cbd"] is None
        assert body["active_batch_count"] == 2

    def test_unknown_template(self, client, db_session, rep_headers):
        assert client.get("/api/products/nope", headers=rep_headers).status_code == 404

    def test_status_is_not_a_route(self, client, db_session, catalog, rep_headers):
        resp = client.get("/api/products/status", headers=rep_headers)
        assert resp.status_code == 404


class TestTemplateWrites:

    TEMPLATE = {
        "name": "Blue Dream Concentrate (1g)",
        "strain_type": "Sativa",
        "product_category": "Concentrates",
        "unit_of_measure": "Grams",
        "supplier": "CannaGrow Farms",
    }

    def test_create_with_generated_id(self, client, db_session, admin_headers):
        resp = client.post("/api/products", json=self.TEMPLATE, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["id"].startswith("tmpl-")
        assert body["is_active"] is True

    def test_create_with_client_id_conflict(self, client, db_session, catalog, admin_headers):
        resp = client.post("/api/products", json={**self.TEMPLATE, "id": "prod001"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_missing_required_fields(self, client, db_session, admin_headers):
        resp = client.post("/api/products", json={"name": "Only a name"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "Missing required fields" in resp.get_json()["error"]

    def test_bad_category(self, client, db_session, admin_headers):
        resp = client.post("/api/products", json={**self.TEMPLATE, "product_category": "Seeds"},
                           headers=admin_headers)
        assert resp.status_code == 400

    def test_sales_rep_cannot_create(self, client, db_session, rep_headers):
        resp = client.post("/api/products", json=self.TEMPLATE, headers=rep_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "MANAGE_PRODUCTS"

    def test_update_template(self, client, db_session, catalog, admin_headers):
        resp = client.patch("/api/products/prod001", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["is_active"] is False

        listed = client.get("/api/products?active_only=true", headers=admin_headers).get_json()
        assert [item["id"] for item in listed["items"]] == ["prod002"]

    def test_template_id_is_immutable(self, client, db_session, catalog, admin_headers):
        resp = client.patch("/api/products/prod001", json={"id": "prod999"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_with_batches_is_conflict(self, client, db_session, catalog, admin_headers):
        resp = client.delete("/api/products/prod001", headers=admin_headers)
        assert resp.status_code == 409

    def test_delete_empty_template(self, client, db_session, admin_headers):
        created = client.post("/api/products", json=self.TEMPLATE, headers=admin_headers).get_json()
        resp = client.delete(f"/api/products/{created['id']}", headers=admin_headers)
        assert resp.status_code == 200
        db_session.expire_all()
        assert db_session.get(ProductTemplate, created["id"]) is None


class TestBatchWrites:

    BATCH = {
        "metrc_package_id": "PKG00099999Z",
        "thc_percentage": 18.0,
        "cbd_percentage": 1.0,
        "wholesale_price_cents": 400,
        "current_stock_quantity": 25,
    }

    def test_create_batch_updates_rollup(self, client, db_session, catalog, admin_headers):
        resp = client.post("/api/products/prod001/batches", json=self.BATCH, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.get_json()["template_id"] == "prod001"

        rollup = client.get("/api/products/prod001/rollup", headers=admin_headers).get_json()
        assert rollup["total_stock"] == 38
        assert rollup["avg_thc"] == pytest.approx((20.0 + 24.0 + 18.0) / 3)

    def test_duplicate_metrc_id(self, client, db_session, catalog, admin_headers):
        resp = client.post("/api/products/prod001/batches",
                           json={**self.BATCH, "metrc_package_id": "PKG00012345A"},
                           headers=admin_headers)
        assert resp.status_code == 409

    def test_batch_under_missing_template(self, client, db_session, admin_headers):
        resp = client.post("/api/products/nope/batches", json=self.BATCH, headers=admin_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("field,value", [
        ("thc_percentage", 101),
        ("cbd_percentage", -1),
        ("wholesale_price_cents", -5),
        ("wholesale_price_cents", 12.5),
        ("current_stock_quantity", -1),
    ])
    def test_invalid_batch_values(self, client, db_session, catalog, admin_headers, field, value):
        resp = client.post("/api/products/prod001/batches", json={**self.BATCH, field: value},
                           headers=admin_headers)
        assert resp.status_code == 400

    def test_expiration_before_production(self, client, db_session, catalog, admin_headers):
        resp = client.patch("/api/products/prod001/batches/batch001", json={
            "production_date": "2026-05-01",
            "expiration_date": "2026-04-01",
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_batch_under_wrong_template(self, client, db_session, catalog, admin_headers):
        resp = client.patch("/api/products/prod002/batches/batch001", json={"is_active": False},
                            headers=admin_headers)
        assert resp.status_code == 404

    def test_stock_correction(self, client, db_session, catalog, admin_headers):
        resp = client.patch("/api/products/prod001/batches/batch002",
                            json={"current_stock_quantity": 30}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["current_stock_quantity"] == 30

    def test_delete_ordered_batch_is_conflict(self, client, db_session, catalog, dispensary, rep_user, admin_headers):
        place_order(
            line_items=[OrderLineItem("prod001", "batch001", 1)],
            dispensary_id=dispensary.id,
            sales_associate_id=rep_user.id,
            payment_method="ACH",
            payment_terms="Net 30",
        )
        resp = client.delete("/api/products/prod001/batches/batch001", headers=admin_headers)
        assert resp.status_code == 409

        resp = client.delete("/api/products/prod002/batches/batch004", headers=admin_headers)
        assert resp.status_code == 200
