"""Sales Q&A and business analysis through a fake insights gateway."""

from datetime import datetime

import pytest

from wholesale.services import insights_service
from wholesale.services.insights_schemas import BusinessInsightsResult, SalesInsightsResult
from wholesale.services.llm_gateway import InsightsError
from wholesale.services.order_service import OrderLineItem, place_order
from wholesale.validation import ValidationError

NOW = datetime(2026, 6, 30, 12, 0)


@pytest.fixture
def sales(db_session, catalog, dispensary, rep_user):
    def _place(when, lines):
        place_order(
            line_items=[OrderLineItem(*line) for line in lines],
            dispensary_id=dispensary.id,
            sales_associate_id=rep_user.id,
            payment_method="ACH",
            payment_terms="Net 30",
            ordered_at=when,
        )

    _place(datetime(2026, 6, 1, 10, 0), [("prod001", "batch001", 4), ("prod002", "batch003", 10)])
    _place(datetime(2026, 6, 20, 10, 0), [("prod001", "batch002", 2)])
    # Outside the default 60 day window
    _place(datetime(2026, 3, 1, 10, 0), [("prod002", "batch003", 50)])


def _sales_result(chart):
    return SalesInsightsResult.model_validate({
        "summary": "Flower leads the period.",
        "topProductsChartData": [{"name": name, "value": value} for name, value in chart],
        "detailedProductList": [],
    })


class TestSalesInsights:

    def test_no_matching_data_skips_gateway(self, db_session, catalog, fake_gateway):
        result = insights_service.generate_sales_insights(question="Best sellers?", now=NOW)

        assert result == {
            "summary": insights_service.NO_DATA_SUMMARY,
            "top_products_chart_data": [],
            "detailed_product_list": [],
        }
        assert fake_gateway.sales_calls == []

    def test_category_without_sales_skips_gateway(self, sales, fake_gateway):
        result = insights_service.generate_sales_insights(
            question="How are vapes doing?", product_category="Vapes", now=NOW,
        )
        assert result["summary"] == insights_service.NO_DATA_SUMMARY
        assert fake_gateway.sales_calls == []

    def test_aggregate_sent_to_gateway(self, sales, fake_gateway):
        fake_gateway.sales_result = _sales_result([("Green Crack Flower", 6)])

        insights_service.generate_sales_insights(question="  Best sellers?  ", now=NOW)

        question, sales_data = fake_gateway.sales_calls[0]
        assert question == "Best sellers?"
        totals = {item.product_template_id: item.total_quantity_sold for item in sales_data}
        assert totals == {"prod001": 6, "prod002": 10}
        flower = next(item for item in sales_data if item.product_template_id == "prod001")
        assert flower.product_name == "Green Crack Flower"
        assert flower.strain_type == "Sativa"

    def test_category_filter_limits_aggregate(self, sales, fake_gateway):
        fake_gateway.sales_result = _sales_result([("CBD Gummies (10mg)", 10)])

        insights_service.generate_sales_insights(
            question="Edibles?", product_category="Edibles", now=NOW,
        )

        _, sales_data = fake_gateway.sales_calls[0]
        assert [item.product_template_id for item in sales_data] == ["prod002"]

    def test_explicit_window(self, sales, fake_gateway):
        fake_gateway.sales_result = _sales_result([])

        insights_service.generate_sales_insights(
            question="March?", date_from="2026-03-01", date_to="2026-03-01", now=NOW,
        )

        _, sales_data = fake_gateway.sales_calls[0]
        assert [(i.product_template_id, i.total_quantity_sold) for i in sales_data] == [("prod002", 50)]

    def test_chart_sorted_and_truncated(self, sales, fake_gateway):
        fake_gateway.sales_result = _sales_result([
            ("a", 1), ("b", 7), ("c", 3), ("d", 9), ("e", 2), ("f", 5),
        ])

        result = insights_service.generate_sales_insights(question="Top?", now=NOW)

        assert [item["name"] for item in result["top_products_chart_data"]] == ["d", "b", "f", "c", "e"]
        assert result["summary"] == "Flower leads the period."

    def test_no_structured_output_is_empty_response(self, sales, fake_gateway):
        fake_gateway.sales_result = None
        with pytest.raises(InsightsError) as exc:
            insights_service.generate_sales_insights(question="Top?", now=NOW)
        assert exc.value.code == InsightsError.EMPTY_RESPONSE

    def test_question_required(self, db_session, fake_gateway):
        with pytest.raises(ValidationError):
            insights_service.generate_sales_insights(question="   ", now=NOW)

    def test_date_only_end_covers_the_whole_day(self, db_session):
        start, end = insights_service.resolve_window("2026-06-01", "2026-06-20", now=NOW)
        assert start == datetime(2026, 6, 1)
        assert end == datetime(2026, 6, 20, 23, 59, 59, 999999)

    def test_timestamp_end_is_used_as_given(self, db_session):
        _, end = insights_service.resolve_window("2026-06-01", "2026-06-20T00:00:00Z", now=NOW)
        assert end == datetime(2026, 6, 20)

    def test_order_late_on_the_end_day_is_included(self, sales, fake_gateway):
        fake_gateway.sales_result = _sales_result([])

        insights_service.generate_sales_insights(
            question="Mid June?", date_from="2026-06-15", date_to="2026-06-20", now=NOW,
        )

        _, sales_data = fake_gateway.sales_calls[0]
        assert [(i.product_template_id, i.total_quantity_sold) for i in sales_data] == [("prod001", 2)]

    @pytest.mark.parametrize("bound", [5, ["2026-06-01"], {"y": 2026}])
    def test_non_string_bound(self, db_session, fake_gateway, bound):
        with pytest.raises(ValidationError):
            insights_service.generate_sales_insights(question="Top?", date_from=bound, now=NOW)

    def test_reversed_window(self, db_session, fake_gateway):
        with pytest.raises(ValidationError):
            insights_service.generate_sales_insights(
                question="Top?", date_from="2026-06-10", date_to="2026-06-01", now=NOW,
            )


class TestBusinessInsights:

    def test_snapshot_and_focus_passed(self, sales, fake_gateway):
        fake_gateway.business_result = BusinessInsightsResult.model_validate({
            "insights": "Stock is healthy.",
            "suggestedActions": ["Restock batch002"],
            "warnings": [],
        })

        result = insights_service.generate_business_insights(focus="  inventory  ")

        assert result == {
            "insights": "Stock is healthy.",
            "suggested_actions": ["Restock batch002"],
            "warnings": [],
        }
        snapshot, focus = fake_gateway.business_calls[0]
        assert focus == "inventory"
        assert {p["id"] for p in snapshot["products"]} == {"prod001", "prod002"}
        assert len(snapshot["orders"]) == 3
        assert snapshot["dispensaries"][0]["license_number"] == "D12345"

    def test_blank_focus_is_none(self, db_session, fake_gateway):
        fake_gateway.business_result = BusinessInsightsResult(insights="ok")
        insights_service.generate_business_insights(focus="   ")
        assert fake_gateway.business_calls[0][1] is None


class TestInsightsRoutes:

    def test_sales_rep_lacks_permission(self, client, db_session, rep_headers, fake_gateway):
        resp = client.post("/api/insights/sales", json={"question": "Top?"}, headers=rep_headers)
        assert resp.status_code == 403

    def test_sales_route(self, client, sales, admin_headers, fake_gateway):
        fake_gateway.sales_result = _sales_result([("Green Crack Flower", 6)])
        resp = client.post("/api/insights/sales", json={
            "question": "Top?",
            "date_range": {"from": "2026-06-01", "to": "2026-06-30"},
        }, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["top_products_chart_data"] == [{"name": "Green Crack Flower", "value": 6.0}]

    def test_empty_response_is_502(self, client, sales, admin_headers, fake_gateway):
        resp = client.post("/api/insights/sales", json={
            "question": "Top?",
            "date_range": {"from": "2026-06-01", "to": "2026-06-30"},
        }, headers=admin_headers)

        assert resp.status_code == 502
        body = resp.get_json()
        assert body["code"] == "EMPTY_RESPONSE"
        assert body["error"] == "AI failed to generate insights."

    def test_missing_gateway_is_503(self, app, client, db_session, admin_headers):
        previous = app.extensions.get("insights_gateway")
        app.extensions["insights_gateway"] = None
        try:
            resp = client.post("/api/insights/business", json={}, headers=admin_headers)
        finally:
            app.extensions["insights_gateway"] = previous
        assert resp.status_code == 503
        assert resp.get_json()["code"] == "GATEWAY_NOT_CONFIGURED"

    def test_bad_date_range(self, client, db_session, admin_headers, fake_gateway):
        resp = client.post("/api/insights/sales", json={
            "question": "Top?", "date_range": "last month",
        }, headers=admin_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("date_range", [{"from": 5}, {"to": ["2026-06-30"]}])
    def test_non_string_date_bounds_are_400(self, client, db_session, admin_headers, fake_gateway, date_range):
        resp = client.post("/api/insights/sales", json={
            "question": "Top?", "date_range": date_range,
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert fake_gateway.sales_calls == []
