#!/usr/bin/env python3
"""
Tests for OutcomeAnalyticsEngine.
"""

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from core.analytics import OutcomeAnalyticsEngine, TimeRange
from core.analytics.engine import INSUFFICIENT_DATA, bucket_key, largest_remainder
from core.config_loader import AnalyticsConfig
from core.scorer.models import WeightProfile
from database.models import MatchRecord
from database.repository import DecisionRepository
from tests import make_test_session

T0 = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)  # a Monday
NOW = datetime(2024, 12, 31, tzinfo=timezone.utc)


class TestAnalyticsHelpers(unittest.TestCase):

    def test_largest_remainder_sums_to_100(self):
        self.assertEqual(largest_remainder({'culture': 1, 'wellbeing': 1, 'technical': 1}),
                         {'culture': 33, 'wellbeing': 33, 'technical': 34})
        shares = largest_remainder({'culture': 2, 'wellbeing': 2, 'technical': 3})
        self.assertEqual(sum(shares.values()), 100)

    def test_largest_remainder_of_nothing_is_even_split(self):
        self.assertEqual(largest_remainder({'culture': 0, 'wellbeing': 0, 'technical': 0}),
                         {'culture': 33, 'wellbeing': 33, 'technical': 34})

    def test_week_buckets_start_on_monday(self):
        self.assertEqual(bucket_key(datetime(2024, 1, 7, 23, 59, tzinfo=timezone.utc), 'week'), '2024-01-01')
        self.assertEqual(bucket_key(datetime(2024, 1, 8, tzinfo=timezone.utc), 'week'), '2024-01-08')

    def test_bucket_keys_use_utc(self):
        riyadh = timezone(timedelta(hours=3))
        moment = datetime(2024, 2, 1, 1, 0, tzinfo=riyadh)
        self.assertEqual(bucket_key(moment, 'day'), '2024-01-31')
        self.assertEqual(bucket_key(moment, 'month'), '2024-01')

    def test_unknown_bucketing_raises(self):
        with self.assertRaises(ValueError):
            bucket_key(T0, 'quarter')

    def test_time_range_validation(self):
        with self.assertRaises(ValueError):
            TimeRange(start=NOW, end=T0)
        with self.assertRaises(ValueError):
            TimeRange.preset('2w', NOW)

    def test_time_range_presets(self):
        window = TimeRange.preset('7d', NOW)
        self.assertEqual(window.start, NOW - timedelta(days=7))
        self.assertEqual(window.end, NOW)
        self.assertIsNone(TimeRange.all_time().start)


@pytest.mark.db
class TestOutcomeAnalyticsEngine(unittest.TestCase):

    def setUp(self):
        self.session = make_test_session()()
        self.repo = DecisionRepository(self.session)
        self.engine = OutcomeAnalyticsEngine(self.repo, clock=lambda: NOW)

    def tearDown(self):
        self.session.close()

    def _add(self, overall, outcome=None, created_at=T0, hired_after_days=None, owner="recruiter-1", **fields):
        outcome_date = None
        if hired_after_days is not None:
            outcome_date = created_at + timedelta(days=hired_after_days)
        record = MatchRecord(
            candidate_id=fields.pop('candidate_id', 'cand'),
            job_id=fields.pop('job_id', 'job'),
            owner_user_id=owner,
            overall_score=overall,
            outcome=outcome,
            outcome_date=outcome_date,
            created_at=created_at,
            updated_at=created_at,
            **fields
        )
        self.session.add(record)
        self.session.commit()
        return record

    def _seed_mixed(self):
        components = dict(culture_score=80, wellbeing_score=60, technical_score=60)
        self._add(90, 'hired', hired_after_days=10, **components)
        self._add(85, 'hired', hired_after_days=20, **components)
        self._add(70, 'rejected', culture_score=20)
        self._add(50)

    def test_empty_owner_gives_zeroed_summary(self):
        summary = self.engine.aggregate("nobody")

        self.assertEqual(summary.total_matches, 0)
        self.assertEqual(summary.success_rate, 0.0)
        self.assertEqual(summary.score_accuracy, 0.0)
        self.assertIsNone(summary.average_time_to_hire)
        self.assertEqual(summary.component_importance, {'culture': 33, 'wellbeing': 33, 'technical': 34})
        self.assertEqual(summary.score_distribution, {'high': 0, 'medium': 0, 'low': 0})

    def test_aggregate_mixed_outcomes(self):
        self._seed_mixed()

        summary = self.engine.aggregate("recruiter-1")

        self.assertEqual(summary.total_matches, 4)
        self.assertEqual(summary.total_hires, 2)
        self.assertEqual(summary.success_rate, 50.0)
        self.assertEqual(summary.success_rate, 100 * summary.total_hires / summary.total_matches)
        self.assertEqual(summary.average_time_to_hire, 15.0)
        self.assertEqual(summary.score_accuracy, 100.0)
        self.assertEqual(summary.average_scores, {'all': 73.75, 'hired': 87.5, 'rejected': 70.0})
        self.assertEqual(summary.score_distribution, {'high': 2, 'medium': 1, 'low': 1})

    def test_component_importance_uses_hired_records_only(self):
        self._seed_mixed()

        importance = self.engine.aggregate("recruiter-1").component_importance

        self.assertEqual(importance, {'culture': 40, 'wellbeing': 30, 'technical': 30})
        self.assertEqual(sum(importance.values()), 100)

    def test_dimension_without_hired_data_counts_as_zero(self):
        self._add(90, 'hired', hired_after_days=3, technical_score=70)

        importance = self.engine.aggregate("recruiter-1").component_importance

        self.assertEqual(importance, {'culture': 0, 'wellbeing': 0, 'technical': 100})

    def test_other_owners_are_excluded(self):
        self._seed_mixed()
        self._add(99, 'hired', hired_after_days=1, owner="recruiter-2")

        self.assertEqual(self.engine.aggregate("recruiter-2").total_matches, 1)
        self.assertEqual(self.engine.aggregate("recruiter-1").total_matches, 4)

    def test_time_range_filters_on_creation(self):
        self._add(60, created_at=T0)
        self._add(60, created_at=T0 + timedelta(days=10))

        window = TimeRange(start=T0 + timedelta(days=5), end=T0 + timedelta(days=30))

        self.assertEqual(self.engine.aggregate("recruiter-1", window).total_matches, 1)

    def test_records_after_the_reference_clock_are_excluded(self):
        self._add(60, created_at=NOW + timedelta(days=1))
        self.assertEqual(self.engine.aggregate("recruiter-1").total_matches, 0)

    def test_attribute_correlation(self):
        python = {'name': 'skill:python', 'contribution': 6.25}
        for i in range(5):
            outcome = 'hired' if i < 2 else 'rejected'
            # Duplicate entries on one record count once
            self._add(80, outcome, top_attributes=[python, python])
        salary = {'name': 'salary', 'contribution': 20}
        self._add(80, 'hired', top_attributes=[salary])
        self._add(80, 'rejected', top_attributes=[salary])

        correlations = self.engine.correlate_attributes("recruiter-1")

        self.assertEqual([c.name for c in correlations], ['salary', 'skill:python'])
        salary_row, python_row = correlations
        self.assertEqual((python_row.total, python_row.hired, python_row.correlation), (5, 2, 0.4))
        self.assertTrue(python_row.sufficient_data)
        self.assertEqual(python_row.insight, "2 out of 5 candidates with this attribute were hired")
        self.assertFalse(salary_row.sufficient_data)
        self.assertEqual(salary_row.insight, INSUFFICIENT_DATA)

    def test_attribute_correlation_limit(self):
        self._add(80, 'hired', top_attributes=[{'name': 'a'}, {'name': 'b'}, {'name': 'c'}])
        self.assertEqual(len(self.engine.correlate_attributes("recruiter-1", limit=2)), 2)

    def test_weekly_and_monthly_trend(self):
        self._add(60, 'hired', created_at=T0, hired_after_days=2)
        self._add(80, created_at=datetime(2024, 1, 7, 20, 0, tzinfo=timezone.utc))
        self._add(70, created_at=datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc))

        weekly = self.engine.trend("recruiter-1", bucketing='week')
        monthly = self.engine.trend("recruiter-1", bucketing='month')

        self.assertEqual([b.key for b in weekly], ['2024-01-01', '2024-01-08'])
        self.assertEqual(weekly[0].total_matches, 2)
        self.assertEqual(weekly[0].hires, 1)
        self.assertEqual(weekly[0].average_score, 70.0)
        self.assertEqual(weekly[0].success_rate, 50.0)
        self.assertEqual([(b.key, b.total_matches) for b in monthly], [('2024-01', 3)])

    def test_trend_rejects_unknown_bucketing(self):
        with self.assertRaises(ValueError):
            self.engine.trend("recruiter-1", bucketing='year')

    def test_pipeline_conversion(self):
        self._add(90, 'hired', hired_after_days=5, was_recommended=True, was_viewed=True, was_applied=True)
        self._add(80, was_recommended=True, was_viewed=True)
        self._add(70)
        self._add(60)

        funnel = self.engine.pipeline_conversion("recruiter-1")

        self.assertEqual(funnel.stages, {
            'matched': 4, 'recommended': 2, 'viewed': 2, 'applied': 1, 'hired': 1,
        })
        self.assertEqual(funnel.conversion_rates, {
            'match_to_recommend': 50.0,
            'recommend_to_view': 100.0,
            'view_to_apply': 50.0,
            'apply_to_hire': 100.0,
            'overall': 25.0,
        })

    def test_empty_pipeline_has_zero_rates(self):
        funnel = self.engine.pipeline_conversion("nobody")
        self.assertEqual(funnel.stages['matched'], 0)
        self.assertEqual(funnel.conversion_rates['overall'], 0.0)

    def test_recommend_weights_without_hires_keeps_current(self):
        self._add(70, 'rejected')

        recommendation = self.engine.recommend_weights("recruiter-1", current=WeightProfile())

        self.assertEqual(recommendation.proposed, {'culture': 30, 'wellbeing': 20, 'technical': 50})
        self.assertEqual(recommendation.confidence, 0.0)
        self.assertEqual(recommendation.hired_count, 0)

    def test_recommend_weights_blends_by_confidence(self):
        engine = OutcomeAnalyticsEngine(
            self.repo, AnalyticsConfig(min_hires_for_full_confidence=2), clock=lambda: NOW
        )
        self._add(90, 'hired', hired_after_days=4, culture_score=80, wellbeing_score=60, technical_score=60)

        half = engine.recommend_weights("recruiter-1")
        self.assertEqual(half.confidence, 0.5)
        self.assertEqual(half.proposed, {'culture': 35, 'wellbeing': 25, 'technical': 40})

        self._add(88, 'hired', hired_after_days=6, culture_score=80, wellbeing_score=60, technical_score=60)
        full = engine.recommend_weights("recruiter-1")
        self.assertEqual(full.confidence, 1.0)
        self.assertEqual(full.proposed, {'culture': 40, 'wellbeing': 30, 'technical': 30})
        self.assertEqual(sum(full.proposed.values()), 100)


class TestAnalyticsReadFailure(unittest.TestCase):

    def test_read_failure_degrades_to_empty_result(self):
        repo = Mock()
        repo.matches.list_for_owner.side_effect = OperationalError("SELECT", {}, Exception("timeout"))
        engine = OutcomeAnalyticsEngine(repo, clock=lambda: NOW)

        summary = engine.aggregate("recruiter-1")

        self.assertEqual(summary.total_matches, 0)
        self.assertEqual(engine.correlate_attributes("recruiter-1"), [])
        self.assertEqual(engine.trend("recruiter-1"), [])
        repo.rollback.assert_called()


if __name__ == '__main__':
    unittest.main()
