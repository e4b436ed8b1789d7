import pytest

from app.extension.extensions import db
from app.services import recompute_service
from app.services.ranking_service import ranking_generation, player_scores_generation
from app.services.result_cache import (
    InMemoryResultCache,
    RedisResultCache,
    create_result_cache,
    get_result_cache,
    ranking_key,
    player_score_key,
)
from app.services.score_import_service import import_scores
from tests.helpers import score_csv, auth_headers, upload


class TestInMemoryResultCache:
    def test_miss_then_hit(self):
        cache = InMemoryResultCache()
        assert cache.get("k", 1) is None
        cache.set("k", 1, [{"a": 1}])
        assert cache.get("k", 1) == [{"a": 1}]

    def test_other_generation_is_a_miss(self):
        cache = InMemoryResultCache()
        cache.set("k", 1, ["old"])
        assert cache.get("k", 2) is None

    def test_map_generations_compare_by_value(self):
        cache = InMemoryResultCache()
        cache.set("k", {"b": 2, "a": 1}, ["v"])
        assert cache.get("k", {"a": 1, "b": 2}) == ["v"]
        assert cache.get("k", {"a": 1, "b": 3}) is None

    def test_fetch_computes_once_per_generation(self):
        cache = InMemoryResultCache()
        calls = []

        def compute():
            calls.append(1)
            return []

        assert cache.fetch("k", 1, compute) == []
        assert cache.fetch("k", 1, compute) == []
        assert len(calls) == 1
        cache.fetch("k", 2, compute)
        assert len(calls) == 2

    def test_delete_and_clear(self):
        cache = InMemoryResultCache()
        cache.set("a", 1, 1)
        cache.set("b", 1, 2)
        cache.delete("a")
        assert cache.get("a", 1) is None
        cache.clear()
        assert cache.get("b", 1) is None


class TestCreateResultCache:
    def test_disabled(self):
        assert create_result_cache({"RESULT_CACHE_ENABLED": False}) is None

    def test_memory(self):
        assert isinstance(create_result_cache({"RESULT_CACHE_BACKEND": "memory"}), InMemoryResultCache)

    def test_redis(self):
        # redis-py connects lazily
        cache = create_result_cache({"RESULT_CACHE_BACKEND": "redis", "REDIS_URL": "redis://localhost:6379/0"})
        assert isinstance(cache, RedisResultCache)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_result_cache({"RESULT_CACHE_BACKEND": "memcached"})


class TestRecompute:
    def test_inline_publish_refreshes_entries(self, app, tenant, shard, make_players, make_competition):
        p1, p2 = make_players("alice", "bob")
        comp = make_competition()

        import_scores(db.session, shard, tenant.id, comp.id,
                      score_csv([(p1.id, 3), (p2.id, 4)]),
                      publish=recompute_service.publish_score_imported)

        cache = get_result_cache()
        ranks = cache.get(ranking_key(tenant.id, comp.id), ranking_generation(shard, comp.id))
        assert [r["player_id"] for r in ranks] == [p2.id, p1.id]
        scores = cache.get(player_score_key(tenant.id, p1.id), player_scores_generation(shard, tenant.id))
        assert scores == [{"competition_title": comp.title, "score": 3}]

    def test_worker_thread_consumes_events(self, app, tenant, shard, make_players, make_competition):
        (p1,) = make_players("alice")
        comp = make_competition()
        recompute_service.start_recompute_worker(app)
        try:
            import_scores(db.session, shard, tenant.id, comp.id, score_csv([(p1.id, 8)]),
                          publish=recompute_service.publish_score_imported)
            recompute_service.wait_for_recompute()
        finally:
            recompute_service.stop_recompute_worker()

        cache = get_result_cache()
        ranks = cache.get(ranking_key(tenant.id, comp.id), ranking_generation(shard, comp.id))
        assert ranks[0]["score"] == 8

    def test_recompute_without_cache_is_noop(self, app, tenant, make_competition):
        comp = make_competition()
        app.extensions["result_cache"] = None
        assert recompute_service.recompute_ranking(tenant.id, comp.id) is None


class _UnreachableCache(InMemoryResultCache):
    def _set_raw(self, key, data):
        raise ConnectionError("cache backend unreachable")


class TestRecomputeFailure:
    def test_inline_failure_keeps_committed_import(self, app, tenant, shard, make_players, make_competition):
        (p1,) = make_players("alice")
        comp = make_competition()
        app.extensions["result_cache"] = _UnreachableCache()

        rows = import_scores(db.session, shard, tenant.id, comp.id, score_csv([(p1.id, 4)]),
                             publish=recompute_service.publish_score_imported)

        assert rows == 1
        assert ranking_generation(shard, comp.id) == 1

    def test_upload_still_succeeds_over_http(self, app, client, tenant, make_players, make_competition):
        (p1,) = make_players("alice")
        comp = make_competition()
        app.extensions["result_cache"] = _UnreachableCache()

        res = client.post(f"/api/organizer/competition/{comp.id}/score",
                          headers=auth_headers("organizer", tenant.name),
                          data=upload(score_csv([(p1.id, 4)])), content_type="multipart/form-data")

        assert res.status_code == 200
        assert res.get_json()["data"]["rows"] == 1
