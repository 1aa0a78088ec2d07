import unittest
from insurdash.periods.grouping import (
    PeriodKey, group_by_period, sorted_periods, previous_period, recent_periods
)
from insurdash.records.model import InsuranceRecord


def rec(year, week, signed=100.0, biz="网约车"):
    return InsuranceRecord(policy_start_year=year, week_number=week, signed_premium_yuan=signed, business_type_category=biz)


class TestPeriodGrouping(unittest.TestCase):
    def test_partition_no_loss_no_duplication(self):
        records = [rec(2025, 10), rec(2025, 9), rec(2024, 52), rec(2025, 10, 50.0), rec(2025, 1)]
        groups = group_by_period(records)
        flattened = [r for bucket in groups.values() for r in bucket]
        self.assertEqual(len(flattened), len(records))
        for r in records:
            self.assertEqual(sum(1 for x in flattened if x is r), 1)
        self.assertEqual(len(groups[PeriodKey(2025, 10)]), 2)
        # input order kept inside a bucket
        self.assertEqual(groups[PeriodKey(2025, 10)][1].signed_premium_yuan, 50.0)

    def test_numeric_order_not_lexical(self):
        keys = [PeriodKey.parse("2025-10"), PeriodKey.parse("2025-9"), PeriodKey.parse("2024-52"), PeriodKey.parse("2025-09")]
        self.assertLess(PeriodKey.parse("2025-9"), PeriodKey.parse("2025-10"))
        ordered = sorted_periods(keys)
        self.assertEqual([k.label for k in ordered], ["2024-52", "2025-9", "2025-9", "2025-10"])

    def test_sorted_periods_from_groups(self):
        groups = group_by_period([rec(2025, 11), rec(2025, 2), rec(2025, 10)])
        self.assertEqual(sorted_periods(groups), [PeriodKey(2025, 2), PeriodKey(2025, 10), PeriodKey(2025, 11)])

    def test_previous_period(self):
        keys = [PeriodKey(2025, 1), PeriodKey(2024, 52), PeriodKey(2025, 3)]
        self.assertEqual(previous_period(PeriodKey(2025, 3), keys), PeriodKey(2025, 1))
        self.assertEqual(previous_period(PeriodKey(2025, 1), keys), PeriodKey(2024, 52))
        self.assertIsNone(previous_period(PeriodKey(2024, 52), keys))

    def test_recent_periods(self):
        keys = [PeriodKey(2025, w) for w in range(1, 21)]
        self.assertEqual(recent_periods(keys, 3), [PeriodKey(2025, 18), PeriodKey(2025, 19), PeriodKey(2025, 20)])
        self.assertEqual(len(recent_periods(keys, None)), 20)

    def test_empty(self):
        self.assertEqual(group_by_period([]), {})
        self.assertEqual(sorted_periods([]), [])

    def test_parse_rejects_garbage(self):
        with self.assertRaises(ValueError):
            PeriodKey.parse("202510")


if __name__ == "__main__":
    unittest.main()
