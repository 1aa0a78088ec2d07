import unittest
from insurdash.kpi.engine import calculate, calculate_increment, safe_div, aggregate
from insurdash.kpi.trend import weekly_series, metric_values
from insurdash.periods.grouping import PeriodKey
from insurdash.records.model import InsuranceRecord


def rec(year=2025, week=1, signed=0.0, matured=0.0, loss=0.0, expense=0.0):
    return InsuranceRecord(
        policy_start_year=year, week_number=week,
        signed_premium_yuan=signed, matured_premium_yuan=matured,
        reported_claim_payment_yuan=loss, expense_amount_yuan=expense,
        policy_count=1,
    )


class TestCalculate(unittest.TestCase):
    def test_empty(self):
        k = calculate([])
        self.assertEqual(k.signed_premium, 0)
        self.assertEqual(k.matured_premium, 0)
        self.assertIsNone(k.loss_ratio)
        self.assertIsNone(k.contribution_margin_ratio)
        self.assertIsNone(k.target_achievement)

    def test_ratios(self):
        k = calculate([rec(signed=2000, matured=1000, loss=500, expense=200), rec(signed=1000, matured=1000, loss=100, expense=100)])
        self.assertAlmostEqual(k.signed_premium, 3000)
        self.assertAlmostEqual(k.matured_premium, 2000)
        self.assertAlmostEqual(k.loss_ratio, 600 / 2000)
        self.assertAlmostEqual(k.contribution_margin_ratio, (2000 - 600 - 300) / 2000)
        self.assertAlmostEqual(k.expense_ratio, 300 / 3000)
        self.assertEqual(k.policy_count, 2)

    def test_zero_matured_gives_null_ratios(self):
        k = calculate([rec(signed=500, matured=0, loss=100, expense=10)])
        self.assertEqual(k.signed_premium, 500)
        self.assertIsNone(k.loss_ratio)
        self.assertIsNone(k.contribution_margin_ratio)

    def test_injected_cost_rule(self):
        k = calculate([rec(matured=1000, loss=400, expense=100)], cost_rule=lambda agg: agg.matured_premium * 0.25)
        self.assertAlmostEqual(k.contribution_margin_ratio, (1000 - 400 - 250) / 1000)

    def test_target_achievement(self):
        k = calculate([rec(signed=5000)], target_scope=20000)
        self.assertAlmostEqual(k.target_achievement, 0.25)
        self.assertEqual(k.annual_premium_target, 20000)
        self.assertIsNone(calculate([rec(signed=5000)], target_scope=0).target_achievement)
        self.assertIsNone(calculate([rec(signed=5000)]).target_achievement)

    def test_derived_ratios_and_averages(self):
        records = [
            InsuranceRecord(2025, 1, signed_premium_yuan=4000, matured_premium_yuan=2000,
                            reported_claim_payment_yuan=600, expense_amount_yuan=400,
                            policy_count=4, claim_case_count=2),
            InsuranceRecord(2025, 1, signed_premium_yuan=1000, matured_premium_yuan=500,
                            reported_claim_payment_yuan=150, expense_amount_yuan=100,
                            policy_count=1, claim_case_count=1),
        ]
        k = calculate(records)
        self.assertAlmostEqual(k.contribution_margin_amount, 2500 - 750 - 500)
        self.assertAlmostEqual(k.variable_cost_ratio, 500 / 5000 + 750 / 2500)
        self.assertAlmostEqual(k.matured_claim_ratio, (3 / 5) * (2500 / 5000))
        self.assertAlmostEqual(k.average_premium, 1000)
        self.assertAlmostEqual(k.average_claim, 250)
        self.assertAlmostEqual(k.average_expense, 100)
        self.assertAlmostEqual(k.average_contribution, 250)

    def test_derived_metrics_null_without_base(self):
        k = calculate([InsuranceRecord(2025, 1, signed_premium_yuan=100, expense_amount_yuan=10)])
        self.assertIsNone(k.variable_cost_ratio)  # loss ratio undefined
        self.assertIsNone(k.matured_claim_ratio)  # no policies
        self.assertIsNone(k.average_premium)
        self.assertIsNone(k.average_claim)
        self.assertAlmostEqual(k.contribution_margin_amount, -10)
        empty = calculate([])
        self.assertEqual(empty.contribution_margin_amount, 0)
        self.assertIsNone(empty.average_expense)

    def test_safe_div(self):
        self.assertIsNone(safe_div(1, 0))
        self.assertIsNone(safe_div(1, None))
        self.assertAlmostEqual(safe_div(1, 4), 0.25)


class TestIncrement(unittest.TestCase):
    def test_same_sets_zero_deltas(self):
        x = [rec(signed=100, matured=80, loss=20), rec(signed=50, matured=40, loss=5)]
        k = calculate_increment(x, x)
        self.assertEqual(k.signed_premium, 0)
        self.assertEqual(k.matured_premium, 0)
        self.assertEqual(k.total_loss, 0)
        self.assertIsNone(k.loss_ratio)

    def test_ratio_from_differenced_pair(self):
        prev = [rec(signed=1000, matured=500, loss=100)]
        cur = [rec(signed=1600, matured=800, loss=250)]
        k = calculate_increment(cur, prev)
        self.assertAlmostEqual(k.signed_premium, 600)
        self.assertAlmostEqual(k.matured_premium, 300)
        # (250-100)/(800-500), not 250/800 - 100/500
        self.assertAlmostEqual(k.loss_ratio, 150 / 300)

    def test_increment_against_empty_previous_equals_absolute(self):
        cur = [rec(signed=10, matured=10, loss=2)]
        self.assertEqual(calculate_increment(cur, []), calculate(cur))

    def test_aggregate(self):
        agg = aggregate([rec(signed=1, matured=2, loss=3, expense=4)])
        self.assertEqual((agg.signed_premium, agg.matured_premium, agg.total_loss, agg.expense), (1, 2, 3, 4))


class TestWeeklySeries(unittest.TestCase):
    def setUp(self):
        self.records = [
            rec(week=10, signed=300, matured=200, loss=50),
            rec(week=9, signed=200, matured=100, loss=20),
            rec(week=9, signed=100, matured=100, loss=20),
            rec(week=2, signed=50, matured=0),
        ]

    def test_current_mode_chronological(self):
        series = weekly_series(self.records)
        self.assertEqual([k for k, _ in series], [PeriodKey(2025, 2), PeriodKey(2025, 9), PeriodKey(2025, 10)])
        self.assertAlmostEqual(series[1][1].signed_premium, 300)

    def test_increment_first_point_falls_back_to_absolute(self):
        series = weekly_series(self.records, mode="increment")
        first = series[0][1]
        self.assertEqual(first.signed_premium, 50)
        self.assertAlmostEqual(series[1][1].signed_premium, 300 - 50)
        self.assertAlmostEqual(series[2][1].signed_premium, 300 - 300)
        # matured delta is zero between weeks 9 and 10
        self.assertIsNone(series[2][1].loss_ratio)

    def test_limit_keeps_predecessor(self):
        series = weekly_series(self.records, mode="increment", limit=1)
        self.assertEqual(len(series), 1)
        self.assertEqual(series[0][0], PeriodKey(2025, 10))
        self.assertAlmostEqual(series[0][1].signed_premium, 0)

    def test_null_preserved(self):
        series = weekly_series(self.records)
        self.assertIsNone(metric_values(series, "loss_ratio")[0])

    def test_empty_and_bad_mode(self):
        self.assertEqual(weekly_series([]), [])
        with self.assertRaises(ValueError):
            weekly_series(self.records, mode="weekly")


if __name__ == "__main__":
    unittest.main()
