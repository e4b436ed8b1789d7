"""
Recompute of cached rankings and per-player score lists.

A score import publishes a ScoreImported event. The worker thread started by
``start_recompute_worker`` consumes events and rewrites the affected cache
entries, tagged with the generation read under the tenant lock. The same
primitives back the ``flask recompute-*`` commands.
"""
import logging
import queue
import threading

from app.extension.shard import shard_session
from app.services.ranking_service import refresh_ranking, refresh_player_scores
from app.services.result_cache import get_result_cache
from app.services.websocket_service import emit_to_tenant

logger = logging.getLogger(__name__)

_events = queue.Queue()
_worker = None
_worker_lock = threading.Lock()
_STOP = object()


def recompute_ranking(tenant_id, competition_id):
    """Rewrite the competition's cached leaderboard. Needs an app context."""
    cache = get_result_cache()
    if cache is None:
        return None
    with shard_session(tenant_id) as shard:
        return refresh_ranking(shard, tenant_id, competition_id, cache)


def recompute_player_scores(tenant_id, player_id):
    cache = get_result_cache()
    if cache is None:
        return None
    with shard_session(tenant_id) as shard:
        return refresh_player_scores(shard, tenant_id, player_id, cache)


def handle_score_imported(event):
    recompute_ranking(event.tenant_id, event.competition_id)
    for player_id in event.player_ids:
        recompute_player_scores(event.tenant_id, player_id)
    emit_to_tenant(event.tenant_id, "ranking_updated", {
        "competition_id": event.competition_id,
        "generation": event.generation,
    })


def publish_score_imported(event):
    """
    Hand a ScoreImported event to the recompute worker, or process it inline
    when no worker is running.
    """
    if _worker is not None and _worker.is_alive():
        _events.put(event)
        return
    # The generation is already committed; readers recompute on a miss
    try:
        handle_score_imported(event)
    except Exception:
        logger.exception("Recompute failed for %s", event)


def _run(app):
    while True:
        event = _events.get()
        try:
            if event is _STOP:
                return
            with app.app_context():
                handle_score_imported(event)
        except Exception:
            logger.exception("Recompute failed for %s", event)
        finally:
            _events.task_done()


def start_recompute_worker(app):
    global _worker
    with _worker_lock:
        if _worker is not None and _worker.is_alive():
            return _worker
        _worker = threading.Thread(target=_run, args=(app,), name="score-recompute", daemon=True)
        _worker.start()
        logger.info("Recompute worker started")
        return _worker


def stop_recompute_worker(timeout=5):
    global _worker
    with _worker_lock:
        if _worker is None:
            return
        _events.put(_STOP)
        _worker.join(timeout)
        _worker = None


def wait_for_recompute():
    """Block until every queued event has been processed."""
    _events.join()
