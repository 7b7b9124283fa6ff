"""Typed request/response contract for the insights gateway."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _GatewayModel(BaseModel):
    # LLM output uses camelCase keys; accept either spelling.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AggregatedSale(_GatewayModel):
    """One template's sales across the filtered orders."""

    product_template_id: str = Field(alias="productTemplateId")
    product_name: str = Field(alias="productName")
    strain_type: str | None = Field(default=None, alias="strainType")
    total_quantity_sold: int = Field(alias="totalQuantitySold")


class TopProductChartItem(_GatewayModel):
    name: str
    value: float


class SalesInsightsResult(_GatewayModel):
    summary: str
    top_products_chart_data: list[TopProductChartItem] = Field(
        default_factory=list, alias="topProductsChartData"
    )
    detailed_product_list: list[AggregatedSale] = Field(
        default_factory=list, alias="detailedProductList"
    )

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "top_products_chart_data": [item.model_dump() for item in self.top_products_chart_data],
            "detailed_product_list": [item.model_dump() for item in self.detailed_product_list],
        }


class BusinessInsightsResult(_GatewayModel):
    insights: str
    suggested_actions: list[str] = Field(default_factory=list, alias="suggestedActions")
    warnings: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "insights": self.insights,
            "suggested_actions": list(self.suggested_actions),
            "warnings": list(self.warnings),
        }
