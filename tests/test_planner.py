from __future__ import annotations

import unittest

from titanic_insights.planner import (
    ChartType,
    PlannerError,
    QueryPlanner,
    SYSTEM_INSTRUCTION,
    parse_plan,
)


class _FakeLLMClient:
    def __init__(self, response: str) -> None:
        self.response = response

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.last_system_prompt = system_prompt
        self.last_user_prompt = user_prompt
        return self.response


class PlannerTests(unittest.TestCase):
    def test_plan_sends_schema_instruction_and_question(self) -> None:
        llm = _FakeLLMClient(
            '{"answer": "Here is the breakdown.", "sql": "SELECT Pclass, COUNT(*) FROM titanic GROUP BY 1",'
            ' "chart": {"type": "bar", "title": "Passengers by class"}}'
        )
        plan = QueryPlanner(llm).plan("How many passengers per class?")

        self.assertEqual(llm.last_user_prompt, "How many passengers per class?")
        self.assertEqual(llm.last_system_prompt, SYSTEM_INSTRUCTION.strip())
        self.assertIn("titanic", llm.last_system_prompt)
        self.assertEqual(plan.answer, "Here is the breakdown.")
        self.assertEqual(plan.sql, "SELECT Pclass, COUNT(*) FROM titanic GROUP BY 1")
        self.assertEqual(plan.chart.type, ChartType.BAR)
        self.assertEqual(plan.chart.title, "Passengers by class")
        self.assertTrue(plan.wants_chart)

    def test_parse_plan_accepts_fenced_json(self) -> None:
        plan = parse_plan(
            """```json
{"answer": "A", "sql": "SELECT 1", "chart": {"type": "pie", "title": "T"}}
```"""
        )
        self.assertEqual(plan.answer, "A")
        self.assertEqual(plan.chart.type, ChartType.PIE)

    def test_unknown_chart_type_becomes_none(self) -> None:
        plan = parse_plan('{"answer": "A", "sql": "SELECT 1", "chart": {"type": "scatter3d", "title": "T"}}')
        self.assertEqual(plan.chart.type, ChartType.NONE)
        self.assertFalse(plan.wants_chart)

    def test_chart_type_is_case_insensitive(self) -> None:
        plan = parse_plan('{"answer": "A", "sql": "SELECT 1", "chart": {"type": " LINE "}}')
        self.assertEqual(plan.chart.type, ChartType.LINE)
        self.assertEqual(plan.chart.title, "")

    def test_plan_without_sql(self) -> None:
        plan = parse_plan('{"answer": "Hello! Ask me about the Titanic."}')
        self.assertIsNone(plan.sql)
        self.assertIsNone(plan.chart)
        self.assertFalse(plan.wants_chart)

    def test_blank_sql_is_treated_as_missing(self) -> None:
        plan = parse_plan('{"answer": "Hi", "sql": "   "}')
        self.assertIsNone(plan.sql)

    def test_unstructured_output_raises(self) -> None:
        with self.assertRaises(PlannerError):
            parse_plan("Plain text answer only")

    def test_empty_output_raises(self) -> None:
        with self.assertRaises(PlannerError):
            parse_plan("")

    def test_missing_answer_raises(self) -> None:
        with self.assertRaises(PlannerError) as context:
            parse_plan('{"sql": "SELECT 1"}')
        self.assertIn("answer", str(context.exception))


if __name__ == "__main__":
    unittest.main()
