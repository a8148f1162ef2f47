from __future__ import annotations

import math
import unittest

from titanic_insights.charts import Chart, ChartDataPoint, build_chart_points, build_figure
from titanic_insights.planner import ChartType


class ChartPointTests(unittest.TestCase):
    def test_points_use_first_two_columns(self) -> None:
        rows = [{"Pclass": 1, "cnt": 3}, {"Pclass": 3, "cnt": 2}]
        self.assertEqual(
            build_chart_points(rows),
            [ChartDataPoint(name="1", value=3.0), ChartDataPoint(name="3", value=2.0)],
        )

    def test_one_point_per_row_with_extra_columns_ignored(self) -> None:
        rows = [
            {"Embarked": "S", "passengers": 644, "avg_fare": 27.1},
            {"Embarked": "C", "passengers": 168, "avg_fare": 59.9},
            {"Embarked": None, "passengers": 2, "avg_fare": 80.0},
        ]
        points = build_chart_points(rows)
        self.assertEqual(len(points), len(rows))
        self.assertEqual([point.name for point in points], ["S", "C", "NULL"])
        self.assertEqual(points[1].value, 168.0)

    def test_single_column_or_empty_rows_give_no_points(self) -> None:
        self.assertEqual(build_chart_points([]), [])
        self.assertEqual(build_chart_points([{"n": 891}]), [])

    def test_non_numeric_values_become_nan(self) -> None:
        points = build_chart_points([{"Sex": "male", "label": "many"}, {"Sex": "female", "label": "314"}])
        self.assertTrue(math.isnan(points[0].value))
        self.assertEqual(points[1].value, 314.0)


class ChartFigureTests(unittest.TestCase):
    def _points(self) -> list[ChartDataPoint]:
        return [ChartDataPoint("1", 0.63), ChartDataPoint("2", 0.47), ChartDataPoint("3", 0.24)]

    def test_bar_pie_and_line_figures(self) -> None:
        expected = {ChartType.BAR: "bar", ChartType.PIE: "pie", ChartType.LINE: "scatter"}
        for chart_type, trace_type in expected.items():
            with self.subTest(chart_type=chart_type):
                figure = build_figure(Chart(chart_type, "Survival rate by class", self._points()))
                self.assertIsNotNone(figure)
                self.assertEqual(figure.data[0].type, trace_type)
                self.assertEqual(figure.layout.title.text, "Survival rate by class")

    def test_nothing_rendered_without_points_or_chart(self) -> None:
        self.assertIsNone(build_figure(None))
        self.assertIsNone(build_figure(Chart(ChartType.BAR, "Empty", [])))
        self.assertIsNone(build_figure(Chart(ChartType.NONE, "No chart", self._points())))


if __name__ == "__main__":
    unittest.main()
