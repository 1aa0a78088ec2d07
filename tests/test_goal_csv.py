import unittest
from insurdash.targets.csvio import GoalCsvParseError, parse_goal_csv, serialize_goal_rows, format_target
from insurdash.targets.dimensions import known_business_types

KNOWN = known_business_types()


class TestGoalCsvParse(unittest.TestCase):
    def test_valid_rows_keep_order(self):
        parsed = parse_goal_csv("业务类型,年度目标（万）\n网约车,320\n出租车,100.5\n", KNOWN)
        self.assertEqual([(r.biz_type, r.annual_target) for r in parsed.rows], [("网约车", 320.0), ("出租车", 100.5)])
        self.assertEqual(parsed.ignored_unknown_count, 0)

    def test_bom_blank_lines_and_padded_header(self):
        content = "\ufeff 业务类型 , 年度目标（万） \n\n网约车,320\n\n   \n摩托车,1700\n"
        parsed = parse_goal_csv(content, KNOWN)
        self.assertEqual(len(parsed.rows), 2)

    def test_missing_column(self):
        with self.assertRaises(GoalCsvParseError) as ctx:
            parse_goal_csv("业务类型,目标\n网约车,1\n", KNOWN)
        self.assertEqual(ctx.exception.issues[0].type, "MISSING_COLUMN")
        self.assertIn("年度目标（万）", ctx.exception.issues[0].message)

    def test_empty_content(self):
        with self.assertRaises(GoalCsvParseError) as ctx:
            parse_goal_csv("", KNOWN)
        self.assertEqual(ctx.exception.issues[0].type, "MISSING_COLUMN")

    def test_every_issue_reported_with_line(self):
        content = (
            "业务类型,年度目标（万）\n"
            "网约车,abc\n"      # line 2
            "出租车,-1\n"       # line 3
            "网约车,5\n"        # line 4, duplicate
            ",10\n"             # line 5
            "摩托车,\n"         # line 6
            "火箭,10\n"         # line 7
            "自卸,900\n"        # line 8, valid
        )
        with self.assertRaises(GoalCsvParseError) as ctx:
            parse_goal_csv(content, KNOWN)
        issues = ctx.exception.issues
        self.assertEqual(
            [(i.type, i.row_index) for i in issues],
            [
                ("NON_NUMERIC", 2),
                ("NEGATIVE_VALUE", 3),
                ("DUPLICATE_BIZ_TYPE", 4),
                ("EMPTY_VALUE", 5),
                ("EMPTY_VALUE", 6),
                ("UNKNOWN_BIZ_TYPE", 7),
            ],
        )
        self.assertEqual(issues[0].raw_value, "abc")
        self.assertEqual(issues[1].biz_type, "出租车")
        self.assertEqual([r.biz_type for r in ctx.exception.valid_rows], ["自卸"])

    def test_width_variant_is_duplicate(self):
        content = "业务类型,年度目标（万）\n10吨以上-普货,450\n10吨以上－普货,999\n"
        with self.assertRaises(GoalCsvParseError) as ctx:
            parse_goal_csv(content, KNOWN)
        issues = ctx.exception.issues
        self.assertEqual([(i.type, i.row_index) for i in issues], [("DUPLICATE_BIZ_TYPE", 3)])
        self.assertEqual([(r.biz_type, r.annual_target) for r in ctx.exception.valid_rows], [("10吨以上-普货", 450.0)])

    def test_accepted_rows_use_known_spelling(self):
        parsed = parse_goal_csv("业务类型,年度目标（万）\n10吨以上－普货,450\n 网约车 ,1\n", KNOWN)
        self.assertEqual([r.biz_type for r in parsed.rows], ["10吨以上-普货", "网约车"])

    def test_non_finite_is_non_numeric(self):
        with self.assertRaises(GoalCsvParseError) as ctx:
            parse_goal_csv("业务类型,年度目标（万）\n网约车,inf\n", KNOWN)
        self.assertEqual(ctx.exception.issues[0].type, "NON_NUMERIC")

    def test_unknown_ignored(self):
        parsed = parse_goal_csv("业务类型,年度目标（万）\n火箭,10\n网约车,1\n", KNOWN, unknown_strategy="ignore")
        self.assertEqual([r.biz_type for r in parsed.rows], ["网约车"])
        self.assertEqual(parsed.ignored_unknown_count, 1)

    def test_zero_is_allowed(self):
        parsed = parse_goal_csv("业务类型,年度目标（万）\n网约车,0\n", KNOWN)
        self.assertEqual(parsed.rows[0].annual_target, 0.0)


class TestGoalCsvSerialize(unittest.TestCase):
    def test_serialize_layout(self):
        text = serialize_goal_rows([("车险整体", 43100.0), ("网约车", 300), ("出租车", 12.5)])
        self.assertEqual(text, "业务类型,年度目标（万）\n车险整体,43100\n网约车,300\n出租车,12.5\n")

    def test_format_target(self):
        self.assertEqual(format_target(3.0), "3")
        self.assertEqual(format_target(0.25), "0.25")


if __name__ == "__main__":
    unittest.main()
