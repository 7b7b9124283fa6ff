"""
Insights gateway: the natural-language analysis boundary.

The core hands the gateway an already filtered and aggregated payload and
gets back a validated result object, or None when the model produced no
usable structured output. Transport errors surface as InsightsError.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod

from openai import APIError, OpenAI
from pydantic import ValidationError as PydanticValidationError

from .insights_schemas import AggregatedSale, BusinessInsightsResult, SalesInsightsResult

logger = logging.getLogger(__name__)


class InsightsError(Exception):
    """Raised when an insights request cannot produce an answer."""

    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    GATEWAY_FAILURE = "GATEWAY_FAILURE"
    GATEWAY_NOT_CONFIGURED = "GATEWAY_NOT_CONFIGURED"

    def __init__(self, code: str, message: str, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


SALES_PROMPT = """You are an expert sales analyst for a cannabis manufacturer.
Your task is to analyze the provided sales data to answer the user's question.

User's Question: "{question}"

Filtered Sales Data (product name, strain, and total quantity sold in the period):
{sales_data}

Respond with a JSON object with these keys:
1. "summary": a concise, natural language summary that directly answers the user's question.
2. "topProductsChartData": the top 5 products by totalQuantitySold, as objects with "name"
   (the productName) and "value" (the totalQuantitySold).
3. "detailedProductList": the full list of products from the provided sales data, as objects
   with productTemplateId, productName, strainType and totalQuantitySold.

Focus only on the data provided. Your analysis should be quantitative and directly address the user's query.
"""

BUSINESS_PROMPT = """You are an operations analyst for a cannabis wholesale manufacturer.
Review the snapshot of the catalog, orders and dispensary clients below.
{focus_line}
Snapshot:
{snapshot}

Respond with a JSON object with these keys:
- "insights": a narrative analysis of the business as shown by the data.
- "suggestedActions": a list of short, concrete next steps.
- "warnings": a list of risks found in the data (low stock, overdue payments, expiring batches).
"""


class InsightsGateway(ABC):
    """Contract for the external analysis service."""

    @abstractmethod
    def answer_sales_question(
        self, question: str, sales_data: list[AggregatedSale]
    ) -> SalesInsightsResult | None:
        raise NotImplementedError

    @abstractmethod
    def analyze_business(self, snapshot: dict, focus: str | None = None) -> BusinessInsightsResult | None:
        raise NotImplementedError


class OpenAIInsightsGateway(InsightsGateway):
    """Chat-completions adapter. One attempt per call, no client retries."""

    def __init__(self, *, api_key: str, model: str, timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: OpenAI | None = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def _complete_json(self, prompt: str) -> dict | None:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
        except APIError as e:
            logger.warning("insights gateway failure code=%s: %s", InsightsError.GATEWAY_FAILURE, e)
            raise InsightsError(
                InsightsError.GATEWAY_FAILURE, "Insights service request failed"
            ) from e

        if not response.choices:
            return None
        content = response.choices[0].message.content
        if not content:
            return None
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.warning("insights gateway returned non-JSON content")
            return None
        return data if isinstance(data, dict) else None

    def answer_sales_question(self, question, sales_data):
        payload = json.dumps([item.model_dump(by_alias=True) for item in sales_data], indent=2)
        data = self._complete_json(SALES_PROMPT.format(question=question, sales_data=payload))
        if data is None:
            return None
        try:
            return SalesInsightsResult.model_validate(data)
        except PydanticValidationError:
            logger.warning("insights gateway returned an invalid sales payload")
            return None

    def analyze_business(self, snapshot, focus=None):
        focus_line = f"Focus the analysis on: {focus}\n" if focus else ""
        prompt = BUSINESS_PROMPT.format(
            focus_line=focus_line,
            snapshot=json.dumps(snapshot, indent=2, default=str),
        )
        data = self._complete_json(prompt)
        if data is None:
            return None
        try:
            return BusinessInsightsResult.model_validate(data)
        except PydanticValidationError:
            logger.warning("insights gateway returned an invalid business payload")
            return None


def init_insights_gateway(app) -> None:
    """
    Install the insights gateway in app.extensions.

    An INSIGHTS_GATEWAY config value wins (tests inject a fake); otherwise
    the OpenAI adapter is built when an API key is configured.
    """
    gateway = app.config.get("INSIGHTS_GATEWAY")
    if gateway is None and app.config.get("OPENAI_API_KEY"):
        gateway = OpenAIInsightsGateway(
            api_key=app.config["OPENAI_API_KEY"],
            model=app.config["INSIGHTS_MODEL"],
            timeout=app.config["INSIGHTS_TIMEOUT_SECONDS"],
        )
    app.extensions["insights_gateway"] = gateway
