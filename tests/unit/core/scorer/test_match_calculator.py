#!/usr/bin/env python3
"""
Unit tests for the match score calculator.
"""

import unittest

from core.config_loader import ScoringConfig
from core.scorer import (
    CandidateProfile, JobProfile, WeightProfile, compute_score, rank_jobs, meets_minimums, sort_key,
)
from core.scorer.culture_fit import culture_alignment, wellbeing_fit, burnout_risk
from core.scorer.factors import skills_overlap


def strong_candidate(**overrides):
    data = dict(
        candidate_id="c-1",
        technical_skills=("Python", "SQL", "React", "Docker"),
        preferred_locations=("Riyadh",),
        preferred_work_setting="remote",
        desired_salary_min=10000,
        years_of_experience=5,
        preferred_company_sizes=("medium",),
    )
    data.update(overrides)
    return CandidateProfile(**data)


def strong_job(**overrides):
    data = dict(
        job_id=1,
        title="Backend Engineer",
        required_skills=("python", "sql", "react native", "docker"),
        location="Riyadh, Saudi Arabia",
        work_setting="Remote",
        salary_min=9000,
        salary_max=15000,
        min_years_experience=3,
        company_size="medium",
    )
    data.update(overrides)
    return JobProfile(**data)


class TestSubFactors(unittest.TestCase):
    """Each sub-factor is capped and missing data awards zero."""

    def test_perfect_match_scores_every_factor_at_cap(self):
        score = compute_score(strong_candidate(), strong_job())

        self.assertEqual(score.breakdown['skills'], 25.0)
        self.assertEqual(score.breakdown['location'], 20.0)
        self.assertEqual(score.breakdown['work_setting'], 15.0)
        self.assertEqual(score.breakdown['salary'], 20.0)
        self.assertEqual(score.breakdown['experience'], 10.0)
        self.assertEqual(score.breakdown['company_size'], 10.0)
        self.assertEqual(score.overall, 100.0)
        self.assertEqual(score.skill, 100.0)
        self.assertEqual(score.technical, 100.0)

    def test_empty_profiles_score_zero(self):
        score = compute_score(CandidateProfile(), JobProfile(job_id=1))

        self.assertEqual(score.overall, 0.0)
        self.assertIsNone(score.skill)
        self.assertIsNone(score.technical)
        self.assertIsNone(score.culture)
        self.assertIsNone(score.wellbeing)
        self.assertIsNone(score.burnout_risk)
        self.assertEqual(score.reasons, [])
        self.assertEqual(score.top_attributes, [])

    def test_skill_matching_is_substring_tolerant_both_ways(self):
        matched = skills_overlap(["React", "PostgreSQL"], ["React Native", "SQL", "Go"])
        self.assertEqual(matched, ["React Native", "SQL"])

    def test_blank_skills_never_match(self):
        matched = skills_overlap(["", "  "], ["Python"])
        self.assertEqual(matched, [])

    def test_partial_skill_ratio_is_rounded(self):
        candidate = strong_candidate(technical_skills=("Python",))
        job = strong_job(required_skills=("Python", "Go", "Rust"))

        score = compute_score(candidate, job)

        # round(1/3 * 25) == 8
        self.assertEqual(score.breakdown['skills'], 8.0)
        self.assertEqual(score.matched_skills, ["Python"])
        self.assertAlmostEqual(score.skill, 33.33, places=2)

    def test_location_half_credit_without_preference(self):
        score = compute_score(strong_candidate(preferred_locations=()), strong_job())
        self.assertEqual(score.breakdown['location'], 10.0)

    def test_location_mismatch_scores_zero(self):
        score = compute_score(strong_candidate(preferred_locations=("Jeddah",)), strong_job())
        self.assertEqual(score.breakdown['location'], 0.0)

    def test_salary_partial_when_floor_within_ratio(self):
        job = strong_job(salary_min=8000, salary_max=9000)
        score = compute_score(strong_candidate(), job)
        self.assertEqual(score.breakdown['salary'], 10.0)

    def test_salary_requires_job_floor(self):
        job = strong_job(salary_min=None, salary_max=20000)
        score = compute_score(strong_candidate(), job)
        self.assertEqual(score.breakdown['salary'], 0.0)

    def test_experience_proportional_below_minimum(self):
        score = compute_score(strong_candidate(years_of_experience=2), strong_job(min_years_experience=4))
        self.assertEqual(score.breakdown['experience'], 5.0)

    def test_experience_zero_when_job_has_no_minimum(self):
        score = compute_score(strong_candidate(years_of_experience=1), strong_job(min_years_experience=None))

        self.assertEqual(score.breakdown['experience'], 0.0)
        self.assertNotIn("Experience level is appropriate", score.reasons)
        # technical falls back to skills alone
        self.assertEqual(score.technical, 100.0)

    def test_experience_full_when_job_states_zero_minimum(self):
        score = compute_score(strong_candidate(years_of_experience=1), strong_job(min_years_experience=0))
        self.assertEqual(score.breakdown['experience'], 10.0)

    def test_candidate_only_attributes_score_zero(self):
        candidate = strong_candidate(
            culture_preferences={'innovation': 8}, wellbeing_needs={'growth': 9}
        )

        score = compute_score(candidate, JobProfile(job_id=1))

        self.assertEqual(score.overall, 0.0)
        self.assertTrue(all(points == 0.0 for points in score.breakdown.values()))
        self.assertEqual(score.reasons, [])

    def test_job_only_experience_scores_zero(self):
        score = compute_score(CandidateProfile(), JobProfile(job_id=1, min_years_experience=3))
        self.assertEqual(score.overall, 0.0)


class TestCultureAndWellbeing(unittest.TestCase):
    """Culture and wellbeing share one block split by weight shares."""

    def setUp(self):
        self.candidate = CandidateProfile(
            culture_preferences={'innovation': 8, 'collaboration': 6},
            wellbeing_needs={'work_life_balance': 9, 'growth': 8, 'stability': 3},
        )
        self.job = JobProfile(
            job_id=7,
            culture_profile={'innovation': 8, 'collaboration': 6},
            wellbeing_offerings={'work_life_balance': 7, 'growth': 5},
        )

    def test_block_split_follows_normalized_weights(self):
        score = compute_score(self.candidate, self.job, WeightProfile(technical=50, culture=30, wellbeing=20))

        self.assertEqual(score.culture, 100.0)
        self.assertEqual(score.wellbeing, 50.0)
        # culture cap = 10 * 30/50, wellbeing cap = 10 * 20/50
        self.assertEqual(score.breakdown['culture'], 6.0)
        self.assertEqual(score.breakdown['wellbeing'], 2.0)
        self.assertEqual(score.overall, 8.0)

    def test_weights_not_summing_to_100_are_normalized(self):
        a = compute_score(self.candidate, self.job, WeightProfile(technical=50, culture=30, wellbeing=20))
        b = compute_score(self.candidate, self.job, WeightProfile(technical=5, culture=3, wellbeing=2))
        self.assertEqual(a.overall, b.overall)
        self.assertEqual(a.breakdown, b.breakdown)

    def test_zero_culture_and_wellbeing_weight_splits_evenly(self):
        score = compute_score(self.candidate, self.job, WeightProfile(technical=100, culture=0, wellbeing=0))
        self.assertEqual(score.breakdown['culture'], 5.0)
        self.assertEqual(score.breakdown['wellbeing'], 2.5)

    def test_all_zero_weights_are_tolerated(self):
        score = compute_score(self.candidate, self.job, WeightProfile(technical=0, culture=0, wellbeing=0))
        self.assertEqual(score.breakdown['culture'], 5.0)

    def test_culture_alignment_extremes(self):
        self.assertEqual(culture_alignment({'pace': 1}, {'pace': 10}), 0.0)
        self.assertEqual(culture_alignment({'pace': 4}, {'pace': 4}), 100.0)
        self.assertIsNone(culture_alignment({'pace': 4}, {'hierarchy': 4}))

    def test_wellbeing_fit_without_offerings_is_not_computed(self):
        self.assertEqual(wellbeing_fit({'growth': 9}, {}), (None, []))

    def test_burnout_risk_from_need_gaps(self):
        risk = burnout_risk({'work_life_balance': 8, 'growth': 6}, {'work_life_balance': 4, 'growth': 7})
        # (4/10 * 8 * 10 + 0) / 2
        self.assertEqual(risk, 16.0)

    def test_burnout_risk_largest_gap_and_missing_satisfaction(self):
        self.assertEqual(burnout_risk({'a': 10}, {'a': 1}), 90.0)
        self.assertIsNone(burnout_risk({'a': 10}, {}))


class TestComposition(unittest.TestCase):
    """Overall score, explanations and ordering."""

    def test_overall_is_sum_of_breakdown_clamped(self):
        candidate = strong_candidate(culture_preferences={'pace': 5}, wellbeing_needs={'growth': 9})
        job = strong_job(culture_profile={'pace': 5}, wellbeing_offerings={'growth': 9})

        score = compute_score(candidate, job)

        self.assertGreater(sum(score.breakdown.values()), 100.0)
        self.assertEqual(score.overall, 100.0)
        for points in score.breakdown.values():
            self.assertGreaterEqual(points, 0.0)

    def test_scoring_is_deterministic(self):
        first = compute_score(strong_candidate(), strong_job())
        second = compute_score(strong_candidate(), strong_job())
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_reasons_one_per_nonzero_factor(self):
        score = compute_score(strong_candidate(), strong_job())
        self.assertEqual(len(score.reasons), 6)
        self.assertIn("Location matches preference: Riyadh, Saudi Arabia", score.reasons)

    def test_top_attributes_ordered_by_contribution_then_name(self):
        score = compute_score(strong_candidate(), strong_job())
        names = [a['name'] for a in score.top_attributes]

        self.assertEqual(names[:3], ['skills', 'location', 'salary'])
        contributions = [a['contribution'] for a in score.top_attributes]
        self.assertEqual(contributions, sorted(contributions, reverse=True))

    def test_rank_jobs_orders_by_score_then_job_id(self):
        candidate = strong_candidate()
        jobs = [
            strong_job(job_id=3, company_size="large"),
            strong_job(job_id=2),
            strong_job(job_id=1),
        ]

        ranked = rank_jobs(candidate, jobs)

        self.assertEqual([job.job_id for job, _ in ranked], [1, 2, 3])
        self.assertEqual(ranked[0][1].overall, 100.0)
        self.assertEqual(ranked[2][1].overall, 90.0)

    def test_sort_key(self):
        score = compute_score(strong_candidate(), strong_job())
        self.assertEqual(sort_key(5, score), (-100.0, 5))

    def test_meets_minimums_reports_unmet_components(self):
        weights = WeightProfile(min_technical=50, min_culture=80)
        score = compute_score(strong_candidate(), strong_job(), weights)

        failures = meets_minimums(score, weights)

        self.assertNotIn('technical', failures)
        self.assertEqual(failures['culture'], {'score': None, 'minimum': 80})

    def test_custom_config_caps(self):
        config = ScoringConfig(skills_max=50)
        score = compute_score(strong_candidate(), strong_job(), config=config)
        self.assertEqual(score.breakdown['skills'], 50.0)
        self.assertEqual(score.overall, 100.0)

    def test_profiles_from_dict_ignore_unknown_keys(self):
        candidate = CandidateProfile.from_dict({'technical_skills': ['Go'], 'favourite_colour': 'blue'})
        job = JobProfile.from_dict({'job_id': 9, 'required_skills': ['go'], 'location': None})
        score = compute_score(candidate, job)
        self.assertEqual(score.breakdown['skills'], 25.0)


if __name__ == '__main__':
    unittest.main()
