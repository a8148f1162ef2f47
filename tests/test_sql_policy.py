from __future__ import annotations

import unittest

from titanic_insights.sql_policy import (
    EmptyQueryError,
    QueryRejected,
    ReadOnlyViolation,
    validate_read_only,
)

SMUGGLED_DELETE = "SELECT 1; DELETE FROM titanic; SELECT x'41' AS blob"


class SqlPolicyTests(unittest.TestCase):
    def test_missing_or_blank_query_is_input_error(self) -> None:
        for sql in (None, "", "   \n\t"):
            with self.subTest(sql=sql):
                with self.assertRaises(EmptyQueryError) as context:
                    validate_read_only(sql)
                self.assertEqual(context.exception.status_code, 400)

    def test_non_select_statements_are_forbidden(self) -> None:
        for sql in (
            "DELETE FROM titanic",
            "drop table titanic",
            "UPDATE titanic SET Survived = 1",
            "WITH t AS (SELECT 1) SELECT * FROM t",
            "-- SELECT\nDELETE FROM titanic",
        ):
            with self.subTest(sql=sql):
                with self.assertRaises(ReadOnlyViolation) as context:
                    validate_read_only(sql)
                self.assertEqual(context.exception.status_code, 403)

    def test_select_is_case_insensitive_and_trimmed(self) -> None:
        sql = "  select Pclass, count(*) from titanic group by Pclass  "
        self.assertEqual(validate_read_only(sql), sql)

    def test_write_smuggled_after_select_is_forbidden(self) -> None:
        for sql in (
            "SELECT 1; DROP TABLE titanic",
            "SELECT * FROM titanic; DELETE FROM titanic",
            "SELECT 1 /* harmless */; INSERT INTO titanic (PassengerId) VALUES (999)",
        ):
            with self.subTest(sql=sql):
                with self.assertRaises(ReadOnlyViolation):
                    validate_read_only(sql)

    def test_non_string_query_is_bad_request(self) -> None:
        for sql in (123, ["SELECT 1"], {"sql": "SELECT 1"}):
            with self.subTest(sql=sql):
                with self.assertRaises(QueryRejected) as context:
                    validate_read_only(sql)
                self.assertEqual(context.exception.status_code, 400)
                self.assertEqual(str(context.exception), "SQL query must be a string")

    def test_alter_smuggled_after_select_is_forbidden(self) -> None:
        with self.assertRaises(ReadOnlyViolation):
            validate_read_only("SELECT 1; ALTER TABLE titanic RENAME TO passengers")

    def test_write_hidden_behind_unparseable_text_is_forbidden(self) -> None:
        for sql in (
            SMUGGLED_DELETE,
            "SELECT x'41'; DROP TABLE titanic",
        ):
            with self.subTest(sql=sql):
                with self.assertRaises(ReadOnlyViolation) as context:
                    validate_read_only(sql)
                self.assertEqual(context.exception.status_code, 403)

    def test_single_unparseable_select_is_left_to_the_store(self) -> None:
        for sql in ("SELECT x'41' AS blob", "SELECT 'unterminated FROM titanic"):
            with self.subTest(sql=sql):
                self.assertEqual(validate_read_only(sql), sql)

    def test_union_of_selects_is_allowed(self) -> None:
        sql = "SELECT 'male' AS sex UNION ALL SELECT 'female'"
        self.assertEqual(validate_read_only(sql), sql)


if __name__ == "__main__":
    unittest.main()
