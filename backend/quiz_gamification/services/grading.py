"""Answer grading: correctness, base points, time bonus and hint penalty.

A single :class:`ScoringPolicy` drives every entry point. Its canonical
configuration awards, for a correct answer:

  base points  = question points × difficulty multiplier (1.0 for all levels)
  time bonus   = floor(points × 0.50) if answered within 25 % of the limit
                 floor(points × 0.25) if answered within 50 % of the limit
                 0 otherwise

and charges a flat penalty per distinct hinted question, once per attempt.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from quiz_gamification.config import settings

logger = logging.getLogger(__name__)


# ── Policy ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScoringPolicy:
    time_bonus_tiers: tuple[tuple[float, float], ...] = ((0.25, 0.5), (0.50, 0.25))
    difficulty_multipliers: Mapping[str, float] = field(
        default_factory=lambda: {"easy": 1.0, "medium": 1.0, "hard": 1.0}
    )
    hint_penalty_points: int = 2
    default_points: int = 10
    default_time_limit: int = 30

    @classmethod
    def from_settings(cls) -> ScoringPolicy:
        return cls(
            time_bonus_tiers=tuple(
                sorted((float(r), float(f)) for r, f in settings.SCORING_TIME_BONUS_TIERS)
            ),
            difficulty_multipliers=dict(settings.SCORING_DIFFICULTY_MULTIPLIERS),
            hint_penalty_points=settings.HINT_PENALTY_POINTS,
            default_points=settings.DEFAULT_QUESTION_POINTS,
            default_time_limit=settings.DEFAULT_TIME_LIMIT_SECONDS,
        )

    def points_of(self, question: Mapping[str, Any]) -> int:
        points = question.get("points")
        return self.default_points if points is None else int(points)

    def base_points(self, question: Mapping[str, Any]) -> int:
        multiplier = self.difficulty_multipliers.get(question.get("difficulty") or "medium", 1.0)
        return math.floor(self.points_of(question) * multiplier)

    def time_bonus(self, question: Mapping[str, Any], response_time_ms: float) -> int:
        """Bonus for a correct answer given in *response_time_ms*."""
        time_limit = question.get("time_limit")
        if time_limit is None:
            time_limit = self.default_time_limit
        if time_limit <= 0:
            return 0

        ratio = max(response_time_ms, 0) / (time_limit * 1000)
        for max_ratio, fraction in self.time_bonus_tiers:
            if ratio <= max_ratio:
                return math.floor(self.points_of(question) * fraction)
        return 0

    def max_points(self, question: Mapping[str, Any]) -> int:
        """Best attainable points for *question*: base plus the top-tier bonus."""
        top_fraction = max((f for _, f in self.time_bonus_tiers), default=0.0)
        return self.base_points(question) + math.floor(self.points_of(question) * top_fraction)

    def hint_penalty(self, hinted_questions: int) -> int:
        return hinted_questions * self.hint_penalty_points


# ── Inputs / outputs ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: int
    user_answer: str | None
    response_time: float = 0  # milliseconds


@dataclass
class GradedAnswer:
    question_id: int
    question_text: str
    user_answer: str | None
    correct_answer: str | None
    is_correct: bool
    options: list[str]
    base_points: int
    time_bonus: int
    points_earned: int
    hint_used: bool
    hint: str | None
    explanation: str | None
    response_time: float
    difficulty: str


@dataclass
class GradingResult:
    answers: list[GradedAnswer]
    session_questions: list[dict[str, Any]]
    base_score: int
    time_bonus: int
    hints_used: int
    hint_penalty: int

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    @property
    def total_questions(self) -> int:
        return len(self.session_questions)


# ── Helpers ───────────────────────────────────────────────────────────────────


def question_options(question: Mapping[str, Any]) -> list[str]:
    if question.get("question_type") == "true_false":
        return ["True", "False"]
    return [
        question[key]
        for key in ("option_a", "option_b", "option_c", "option_d")
        if question.get(key) is not None
    ]


def resolve_session(
    pool: Sequence[Mapping[str, Any]],
    session_ids: Iterable[int] | None,
) -> list[dict[str, Any]]:
    """Return the pool questions that made up this session, in session order.

    *session_ids* are the ids the session served (recorded server-side or
    declared by the client), intersected with the quiz's pool. When they
    are unknown, or none of them is in the pool, the session is the whole
    pool.
    """
    by_id = {q["id"]: q for q in pool}

    session: list[dict[str, Any]] = []
    seen: set[int] = set()
    for qid in session_ids or ():
        if qid in seen:
            continue
        seen.add(qid)
        question = by_id.get(qid)
        if question is None:
            logger.debug("Skipping unknown question id %s", qid)
            continue
        session.append(dict(question))

    if not session:
        return [dict(q) for q in pool]
    return session


# ── Main grading function ────────────────────────────────────────────────────


def grade_answers(
    answers: Sequence[SubmittedAnswer],
    session_questions: Sequence[Mapping[str, Any]],
    policy: ScoringPolicy,
    hints_used_list: Iterable[int] = (),
) -> GradingResult:
    """Grade *answers* against the session's authoritative questions.

    Answers that reference a question outside the session are skipped
    without error; only the first answer per question counts.
    """
    by_id = {q["id"]: q for q in session_questions}
    hinted = {qid for qid in hints_used_list if qid in by_id}

    graded: list[GradedAnswer] = []
    graded_ids: set[int] = set()
    base_score = 0
    total_bonus = 0

    for answer in answers:
        question = by_id.get(answer.question_id)
        if question is None or answer.question_id in graded_ids:
            continue
        graded_ids.add(answer.question_id)

        # Exact match, no case folding
        is_correct = answer.user_answer is not None and answer.user_answer == question.get(
            "correct_answer"
        )
        response_time = answer.response_time or 0
        base = policy.base_points(question) if is_correct else 0
        bonus = policy.time_bonus(question, response_time) if is_correct else 0

        base_score += base
        total_bonus += bonus
        graded.append(
            GradedAnswer(
                question_id=question["id"],
                question_text=question.get("question_text", ""),
                user_answer=answer.user_answer,
                correct_answer=question.get("correct_answer"),
                is_correct=is_correct,
                options=question_options(question),
                base_points=base,
                time_bonus=bonus,
                points_earned=base + bonus,
                hint_used=question["id"] in hinted,
                hint=question.get("hint"),
                explanation=question.get("explanation"),
                response_time=response_time,
                difficulty=question.get("difficulty") or "medium",
            )
        )

    result = GradingResult(
        answers=graded,
        session_questions=[dict(q) for q in session_questions],
        base_score=base_score,
        time_bonus=total_bonus,
        hints_used=len(hinted),
        hint_penalty=policy.hint_penalty(len(hinted)),
    )
    logger.debug(
        "Graded %d/%d answers: base=%d bonus=%d penalty=%d",
        result.correct_count, result.total_questions,
        base_score, total_bonus, result.hint_penalty,
    )
    return result
