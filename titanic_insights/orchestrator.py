from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Literal, Protocol
from uuid import uuid4

from titanic_insights.charts import Chart, build_chart_points
from titanic_insights.planner import QueryPlan


logger = logging.getLogger(__name__)

Role = Literal["user", "assistant"]


class Planner(Protocol):
    def plan(self, question: str) -> QueryPlan:
        ...


class QueryGateway(Protocol):
    def run_query(self, sql: str) -> list[dict[str, Any]]:
        ...


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_PLAN = "awaiting_plan"
    AWAITING_QUERY_RESULT = "awaiting_query_result"


@dataclass(frozen=True)
class ChatMessage:
    id: str
    role: Role
    content: str
    timestamp: datetime
    sql: str | None = None
    chart: Chart | None = None


class ChatOrchestrator:
    """Runs one chat turn at a time: plan the question, run its query, answer.

    ``IDLE -> AWAITING_PLAN -> AWAITING_QUERY_RESULT -> IDLE``. A plan without
    SQL skips the query step. Every accepted turn appends exactly one assistant
    message, including when the planner or the gateway fails.
    """

    def __init__(
        self,
        planner: Planner,
        gateway: QueryGateway,
        *,
        greeting: str | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.planner = planner
        self.gateway = gateway
        self._clock = clock
        self._state = TurnState.IDLE
        self._messages: list[ChatMessage] = []
        if greeting:
            self._append("assistant", greeting)

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is not TurnState.IDLE

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def submit(self, text: str) -> ChatMessage | None:
        """Run a full turn for ``text`` and return the assistant reply.

        Returns ``None`` without touching the history when the text is blank
        or another turn is still in flight.
        """
        if not text or not text.strip():
            return None
        if self.is_loading:
            logger.info("Ignoring submission while a turn is in flight (state=%s)", self._state.value)
            return None

        self._append("user", text)
        self._state = TurnState.AWAITING_PLAN
        try:
            reply = self._run_turn(text)
        except Exception as exc:
            logger.exception("Chat turn failed: %s", exc)
            reply = self._append(
                "assistant",
                f"I'm sorry, I encountered an error: {str(exc) or type(exc).__name__}.",
            )
        finally:
            self._state = TurnState.IDLE
        return reply

    def _run_turn(self, question: str) -> ChatMessage:
        plan = self.planner.plan(question)

        if not plan.sql:
            return self._append("assistant", plan.answer)

        self._state = TurnState.AWAITING_QUERY_RESULT
        rows = self.gateway.run_query(plan.sql)
        points = build_chart_points(rows)
        logger.info("Query returned %s rows (%s chart points)", len(rows), len(points))

        chart = None
        if plan.wants_chart:
            chart = Chart(type=plan.chart.type, title=plan.chart.title, data=points)

        return self._append("assistant", plan.answer, sql=plan.sql, chart=chart)

    def _append(
        self,
        role: Role,
        content: str,
        *,
        sql: str | None = None,
        chart: Chart | None = None,
    ) -> ChatMessage:
        message = ChatMessage(
            id=uuid4().hex,
            role=role,
            content=content,
            timestamp=self._clock(),
            sql=sql,
            chart=chart,
        )
        self._messages.append(message)
        return message
