"""Tests for the Redis-backed helpers (question cache, rate limiter, quiz sessions) and store selection."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import redis
from fastapi import HTTPException

from conftest import FakeRedis
from quiz_gamification.api import deps
from quiz_gamification.db import session as db_session
from quiz_gamification.services import question_cache, quiz_sessions, rate_limiter
from quiz_gamification.store.sql import SqlRecordStore


# ── Question cache ─────────────────────────────────────────────────────────────


def test_cache_disabled_reads_store():
    fake_store = MagicMock()
    fake_store.get.return_value = [{"id": 1}]
    assert question_cache.get_question_pool(fake_store, 5) == [{"id": 1}]
    fake_store.get.assert_called_once_with("questions", {"quiz_id": 5}, order_by=[("id", False)])


def test_cache_hit_skips_store():
    client = MagicMock()
    client.get.return_value = json.dumps([{"id": 3}])
    fake_store = MagicMock()
    with patch.object(question_cache.settings, "QUESTION_CACHE_ENABLED", True), patch.object(
        question_cache, "get_redis", return_value=client
    ):
        assert question_cache.get_question_pool(fake_store, 5) == [{"id": 3}]
    client.get.assert_called_once_with("question_pool:5")
    fake_store.get.assert_not_called()


def test_cache_miss_populates_cache():
    client = MagicMock()
    client.get.return_value = None
    fake_store = MagicMock()
    fake_store.get.return_value = [{"id": 9}]
    with patch.object(question_cache.settings, "QUESTION_CACHE_ENABLED", True), patch.object(
        question_cache, "get_redis", return_value=client
    ):
        assert question_cache.get_question_pool(fake_store, 5) == [{"id": 9}]
    key, ttl, raw = client.setex.call_args.args
    assert key == "question_pool:5"
    assert ttl == question_cache.settings.QUESTION_CACHE_TTL_SECONDS
    assert json.loads(raw) == [{"id": 9}]


def test_cache_redis_outage_falls_back_to_store():
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("refused")
    client.setex.side_effect = redis.ConnectionError("refused")
    fake_store = MagicMock()
    fake_store.get.return_value = [{"id": 1}]
    with patch.object(question_cache.settings, "QUESTION_CACHE_ENABLED", True), patch.object(
        question_cache, "get_redis", return_value=client
    ):
        assert question_cache.get_question_pool(fake_store, 5) == [{"id": 1}]


# ── Rate limiter ───────────────────────────────────────────────────────────────


def _request(user_id=None):
    request = MagicMock()
    request.state = SimpleNamespace(user_id=user_id) if user_id else SimpleNamespace()
    request.client.host = "10.0.0.7"
    return request


def test_rate_limit_disabled_skips_redis():
    with patch.object(rate_limiter, "get_redis") as get_redis:
        rate_limiter.require_submit_rate_limit(_request("u1"))
    get_redis.assert_not_called()


def test_pour_sends_capacity_and_drain_rate():
    client = MagicMock()
    client.eval.return_value = "0"
    with patch.object(rate_limiter, "get_redis", return_value=client):
        assert rate_limiter.pour("rl:submit:u1", 30, 5) == 0.0

    _, numkeys, key, capacity, drain, _now, ttl = client.eval.call_args.args
    assert (numkeys, key, capacity, drain) == (1, "rl:submit:u1", 5, 0.5)
    assert ttl == 11


def test_full_bucket_is_429_with_retry_after():
    client = MagicMock()
    client.eval.return_value = "1.5"
    with patch.object(rate_limiter.settings, "RATE_LIMIT_SUBMIT_RPM", 30), patch.object(
        rate_limiter, "get_redis", return_value=client
    ):
        with pytest.raises(HTTPException) as exc:
            rate_limiter.require_submit_rate_limit(_request("u1"))

    assert exc.value.status_code == 429
    assert exc.value.headers == {"Retry-After": "2"}
    assert client.eval.call_args.args[2] == "rl:submit:u1"


def test_anonymous_caller_keyed_by_address():
    client = MagicMock()
    client.eval.return_value = "0"
    with patch.object(rate_limiter.settings, "RATE_LIMIT_SUBMIT_RPM", 30), patch.object(
        rate_limiter, "get_redis", return_value=client
    ):
        rate_limiter.require_submit_rate_limit(_request())
    assert client.eval.call_args.args[2] == "rl:submit:ip:10.0.0.7"


def test_rate_limit_fails_open_on_redis_error():
    client = MagicMock()
    client.eval.side_effect = redis.ConnectionError("refused")
    with patch.object(rate_limiter, "get_redis", return_value=client):
        assert rate_limiter.pour("rl:submit:u1", 30, 5) == 0.0


# ── Quiz sessions ──────────────────────────────────────────────────────────────


def test_session_round_trip_and_quiz_mismatch():
    fake = FakeRedis()
    with patch.object(quiz_sessions.settings, "QUIZ_SESSIONS_ENABLED", True), patch.object(
        quiz_sessions, "get_redis", return_value=fake
    ):
        quiz_sessions.remember("quiz_4_abc", 4, [7, 3, 5])
        assert quiz_sessions.served_question_ids("quiz_4_abc", 4) == [7, 3, 5]
        assert quiz_sessions.served_question_ids("quiz_4_abc", 8) is None
        assert quiz_sessions.served_question_ids("quiz_4_missing", 4) is None
        assert quiz_sessions.served_question_ids(None, 4) is None


def test_session_lookup_redis_outage_is_unknown_session():
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("refused")
    client.setex.side_effect = redis.ConnectionError("refused")
    with patch.object(quiz_sessions.settings, "QUIZ_SESSIONS_ENABLED", True), patch.object(
        quiz_sessions, "get_redis", return_value=client
    ):
        quiz_sessions.remember("quiz_1_x", 1, [1])
        assert quiz_sessions.served_question_ids("quiz_1_x", 1) is None


# ── Store selection ────────────────────────────────────────────────────────────


def test_get_store_defaults_to_sql(db):
    assert isinstance(deps.get_store(db), SqlRecordStore)


def test_get_store_postgrest(db):
    sentinel = object()
    with patch.object(deps.settings, "STORE_BACKEND", "postgrest"), patch.object(
        deps, "get_rest_store", return_value=sentinel
    ):
        assert deps.get_store(db) is sentinel


def test_get_db_without_database_opens_no_session():
    with patch.object(db_session.settings, "STORE_BACKEND", "postgrest"), patch.object(
        db_session, "get_session_factory"
    ) as factory:
        assert list(db_session.get_db()) == [None]
    factory.assert_not_called()
