"""Background tasks executed by Celery workers."""

import logging

from quiz_gamification.celery_app import celery_app
from quiz_gamification.db.session import session_scope, uses_database
from quiz_gamification.services.outbox import replay_pending
from quiz_gamification.store.rest import get_rest_store
from quiz_gamification.store.sql import SqlRecordStore

logger = logging.getLogger(__name__)


@celery_app.task(name="replay_outbox")
def replay_outbox(limit: int | None = None) -> dict:
    """Replay pending secondary writes from the outbox.

    Scheduled by Celery beat every ``OUTBOX_SWEEP_SECONDS``.
    """
    if not uses_database():
        return replay_pending(get_rest_store(), limit)

    with session_scope() as db:
        return replay_pending(SqlRecordStore(db), limit)
