from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from titanic_insights.llm_clients import LLMClient


logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = """
You are a data analysis assistant for the Titanic dataset.
The dataset is stored in a DuckDB table named 'titanic' with the following columns:
- PassengerId (int)
- Survived (int: 0=No, 1=Yes)
- Pclass (int: 1, 2, 3)
- Name (text)
- Sex (text: male, female)
- Age (real, may be NULL)
- SibSp (int: # of siblings/spouses aboard)
- Parch (int: # of parents/children aboard)
- Ticket (text)
- Fare (real)
- Cabin (text, may be NULL)
- Embarked (text: C, Q, S, may be NULL)

Your goal is to answer the user's question by generating a single read-only SQL SELECT query.
You MUST return a JSON object with the following structure:
{
  "answer": "A friendly textual answer to the user's question.",
  "sql": "The SQL query used to get the data.",
  "chart": {
    "type": "bar" | "pie" | "line" | "none",
    "title": "Chart Title"
  }
}
For charts, the first selected column is the label and the second is the numeric value.
If the user asks for a visualization, specify the chart type and title.
For histograms of age, group them into bins (e.g., 0-10, 10-20, etc.) in your SQL query.
If the question does not need data (for example a greeting), omit "sql".
Always be helpful and accurate.
"""


class PlannerError(Exception):
    """The language model's output could not be turned into a query plan."""


class ChartType(str, Enum):
    BAR = "bar"
    PIE = "pie"
    LINE = "line"
    NONE = "none"


class ChartDirective(BaseModel):
    type: ChartType = ChartType.NONE
    title: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _known_chart_type(cls, value: Any) -> ChartType:
        # Anything outside the closed set is treated as "no chart"
        normalized = str(value or "").strip().lower()
        try:
            return ChartType(normalized)
        except ValueError:
            return ChartType.NONE

    @field_validator("title", mode="before")
    @classmethod
    def _title_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class QueryPlan(BaseModel):
    answer: str = Field(min_length=1)
    sql: Optional[str] = None
    chart: Optional[ChartDirective] = None

    @field_validator("sql", mode="before")
    @classmethod
    def _blank_sql_is_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def wants_chart(self) -> bool:
        return self.chart is not None and self.chart.type is not ChartType.NONE


class QueryPlanner:
    def __init__(self, llm_client: LLMClient, system_instruction: str = SYSTEM_INSTRUCTION) -> None:
        self.llm_client = llm_client
        self.system_instruction = system_instruction.strip()

    def plan(self, question: str) -> QueryPlan:
        logger.info("Requesting query plan for question: %s", question)
        model_output = self.llm_client.generate(self.system_instruction, question)
        plan = parse_plan(model_output)
        logger.info(
            "Plan received: sql=%s, chart=%s",
            bool(plan.sql),
            plan.chart.type.value if plan.chart else "none",
        )
        return plan


def parse_plan(model_output: str) -> QueryPlan:
    payload = _extract_json_payload(model_output)
    if payload is None:
        raise PlannerError("The model did not return a valid JSON plan")

    try:
        return QueryPlan.model_validate(payload)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) for error in exc.errors()
        )
        raise PlannerError(f"The model returned an invalid plan ({fields})") from exc


def _extract_json_payload(model_output: str) -> dict[str, object] | None:
    text = (model_output or "").strip()
    if not text:
        return None

    candidates: list[str] = [text]
    fenced_match = re.search(r"```json\s*(\{.*?\})\s*```", text, flags=re.DOTALL | re.IGNORECASE)
    if fenced_match:
        candidates.insert(0, fenced_match.group(1).strip())

    brace_match = re.search(r"(\{.*\})", text, flags=re.DOTALL)
    if brace_match:
        candidates.append(brace_match.group(1).strip())

    for candidate in candidates:
        try:
            decoded = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            return decoded
    return None
