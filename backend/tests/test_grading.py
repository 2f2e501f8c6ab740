"""Unit tests for the answer grader and the scoring policy."""

import pytest

from quiz_gamification.services.grading import (
    ScoringPolicy,
    SubmittedAnswer,
    grade_answers,
    question_options,
    resolve_session,
)

POLICY = ScoringPolicy()


def _q(qid: int, **fields) -> dict:
    base = {
        "id": qid,
        "question_text": f"Q{qid}",
        "option_a": "A",
        "option_b": "B",
        "correct_answer": "A",
        "points": 10,
        "time_limit": 30,
        "difficulty": "medium",
    }
    base.update(fields)
    return base


# ── Time bonus tiers ───────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "response_ms, expected_bonus",
    [
        (5000, 5),    # ratio 0.166 → 50 %
        (7500, 5),    # ratio 0.25 exactly → still top tier
        (10000, 2),   # ratio 0.333 → 25 %, floor(2.5)
        (15000, 2),   # ratio 0.50 exactly
        (20000, 0),   # ratio 0.666 → no bonus
    ],
)
def test_time_bonus_tiers(response_ms, expected_bonus):
    assert POLICY.time_bonus(_q(1), response_ms) == expected_bonus


def test_time_bonus_zero_limit_gives_nothing():
    assert POLICY.time_bonus(_q(1, time_limit=0), 0) == 0


def test_time_bonus_missing_limit_uses_default():
    # default 30 s → 5 s is the top tier
    assert POLICY.time_bonus(_q(1, time_limit=None), 5000) == 5


def test_max_points_is_base_plus_top_bonus():
    assert POLICY.max_points(_q(1)) == 15
    assert POLICY.max_points(_q(1, points=7)) == 7 + 3


def test_difficulty_multiplier_applies_to_base_points():
    policy = ScoringPolicy(difficulty_multipliers={"hard": 1.5})
    assert policy.base_points(_q(1, difficulty="hard")) == 15
    assert policy.base_points(_q(1, difficulty="easy")) == 10


# ── Grading ────────────────────────────────────────────────────────────────────


def test_correct_fast_answer_scores_base_plus_bonus():
    result = grade_answers([SubmittedAnswer(1, "A", 5000)], [_q(1)], POLICY)

    graded = result.answers[0]
    assert graded.is_correct
    assert graded.base_points == 10
    assert graded.time_bonus == 5
    assert graded.points_earned == 15


def test_correct_slow_answer_gets_no_bonus():
    result = grade_answers([SubmittedAnswer(1, "A", 20000)], [_q(1)], POLICY)
    assert result.answers[0].points_earned == 10
    assert result.time_bonus == 0


def test_wrong_answer_scores_zero():
    result = grade_answers([SubmittedAnswer(1, "B", 1000)], [_q(1)], POLICY)
    graded = result.answers[0]
    assert not graded.is_correct
    assert graded.base_points == 0
    assert graded.time_bonus == 0


def test_match_is_exact():
    result = grade_answers([SubmittedAnswer(1, "a", 1000)], [_q(1)], POLICY)
    assert not result.answers[0].is_correct


def test_missing_answer_is_incorrect():
    result = grade_answers([SubmittedAnswer(1, None, 1000)], [_q(1)], POLICY)
    assert not result.answers[0].is_correct


def test_unknown_question_is_skipped():
    result = grade_answers(
        [SubmittedAnswer(1, "A", 1000), SubmittedAnswer(999, "A", 1000)], [_q(1)], POLICY
    )
    assert [a.question_id for a in result.answers] == [1]
    assert result.correct_count == 1
    assert result.total_questions == 1


def test_only_first_answer_per_question_counts():
    result = grade_answers(
        [SubmittedAnswer(1, "B", 1000), SubmittedAnswer(1, "A", 1000)], [_q(1)], POLICY
    )
    assert len(result.answers) == 1
    assert not result.answers[0].is_correct


def test_hint_penalty_counts_distinct_session_questions():
    session = [_q(1), _q(2)]
    result = grade_answers(
        [SubmittedAnswer(1, "A", 1000), SubmittedAnswer(2, "A", 1000)],
        session,
        POLICY,
        hints_used_list=[1, 1, 2, 77],
    )
    assert result.hints_used == 2
    assert result.hint_penalty == 4
    assert [a.hint_used for a in result.answers] == [True, True]


def test_grading_is_deterministic():
    session = [_q(1), _q(2, points=20, time_limit=60)]
    answers = [SubmittedAnswer(1, "A", 4000), SubmittedAnswer(2, "A", 25000)]
    first = grade_answers(answers, session, POLICY)
    second = grade_answers(answers, session, POLICY)
    assert first == second


# ── Session resolution ─────────────────────────────────────────────────────────


def test_session_uses_declared_ids_within_pool():
    pool = [_q(1), _q(2), _q(3)]
    session = resolve_session(pool, [3, 1, 42])
    assert [q["id"] for q in session] == [3, 1]


def test_unknown_session_is_the_whole_pool():
    pool = [_q(1), _q(2), _q(3)]
    assert [q["id"] for q in resolve_session(pool, None)] == [1, 2, 3]
    assert [q["id"] for q in resolve_session(pool, [])] == [1, 2, 3]
    assert [q["id"] for q in resolve_session(pool, [99])] == [1, 2, 3]


def test_options_for_true_false_questions():
    assert question_options({"question_type": "true_false"}) == ["True", "False"]
    assert question_options(_q(1)) == ["A", "B"]
