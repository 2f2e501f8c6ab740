"""Record-store interface shared by the SQL and PostgREST backends.

The scoring pipeline only ever needs three operations against the store:

- ``get(collection, filters)``     → list of matching records (dicts)
- ``insert(collection, record)``   → the stored record, including its ``id``
- ``patch(collection, id, changes)``

There are no transactions spanning calls. Every backend raises
:class:`~quiz_gamification.core.errors.RecordStoreError` on failure.
"""

from typing import Any, Mapping, Protocol, Sequence

Record = dict[str, Any]

# ── Collection names ──────────────────────────────────────────────────────────

QUIZZES = "quizzes"
QUESTIONS = "questions"
QUIZ_SCORES = "quiz_scores"
QUESTION_RESPONSES = "quiz_question_responses"
USER_POINTS = "user_points"
USER_ACHIEVEMENTS = "user_achievements"
LEADERBOARD = "user_leaderboard_entries"
QUIZ_ANALYTICS = "quiz_analytics"
OUTBOX = "side_effect_outbox"


class RecordStore(Protocol):
    def get(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        order_by: Sequence[tuple[str, bool]] | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        """Return records whose fields equal every value in *filters*.

        ``order_by`` is a list of ``(field, descending)`` pairs.
        """
        ...

    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        ...

    def patch(self, collection: str, record_id: Any, changes: Mapping[str, Any]) -> None:
        ...
