import fcntl
import os
import subprocess
import sys
import threading
import time

import pytest

from app.errors import LockTimeoutError
from app.extension.shard import shard_path
from app.services.tenant_lock import TenantLock, tenant_lock, lock_file_path

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def test_second_holder_waits_for_release(tmp_path):
    log = []
    holding = threading.Event()

    def first():
        with TenantLock(1, lock_dir=str(tmp_path)):
            log.append("first-in")
            holding.set()
            time.sleep(0.2)
            log.append("first-out")

    def second():
        holding.wait()
        with TenantLock(1, lock_dir=str(tmp_path)):
            log.append("second-in")

    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)

    assert log == ["first-in", "first-out", "second-in"]


def test_bounded_wait_times_out(tmp_path):
    with TenantLock(7, lock_dir=str(tmp_path)):
        started = time.monotonic()
        with pytest.raises(LockTimeoutError) as exc:
            TenantLock(7, timeout=0.1, lock_dir=str(tmp_path)).acquire()
        assert time.monotonic() - started >= 0.1
        assert exc.value.status_code == 503
        assert exc.value.retryable


def test_bounded_wait_succeeds_once_released(tmp_path):
    holder = TenantLock(3, lock_dir=str(tmp_path))
    holder.acquire()
    threading.Timer(0.05, holder.release).start()

    waiter = TenantLock(3, timeout=2, lock_dir=str(tmp_path))
    waiter.acquire()
    assert waiter.locked
    waiter.release()


def test_tenants_do_not_block_each_other(tmp_path):
    with TenantLock(1, lock_dir=str(tmp_path)):
        other = TenantLock(2, timeout=0, lock_dir=str(tmp_path))
        other.acquire()
        assert other.locked
        other.release()


def test_released_when_block_raises(tmp_path):
    with pytest.raises(RuntimeError):
        with TenantLock(5, lock_dir=str(tmp_path)):
            raise RuntimeError("boom")

    again = TenantLock(5, timeout=0, lock_dir=str(tmp_path))
    again.acquire()
    again.release()


def test_lock_file_kept_apart_from_shard(tenant, app):
    with tenant_lock(tenant.id):
        lock_path = lock_file_path(tenant.id)
        assert os.path.exists(lock_path)
        assert lock_path != shard_path(tenant.id)
        with pytest.raises(LockTimeoutError):
            with tenant_lock(tenant.id, timeout=0.05):
                pass


def test_configured_timeout_applies(tenant, app):
    app.config["TENANT_LOCK_TIMEOUT"] = 0.05
    with TenantLock(tenant.id, lock_dir=app.config["TENANT_DB_DIR"]):
        with pytest.raises(LockTimeoutError):
            with tenant_lock(tenant.id):
                pass


GEVENT_SCRIPT = """
from gevent import monkey
monkey.patch_all()

import sys
import time

import gevent

from app.services.tenant_lock import TenantLock

lock_dir = sys.argv[1]
log = []


def holder():
    with TenantLock(1, lock_dir=lock_dir):
        log.append("holder-in")
        time.sleep(0.1)
        log.append("holder-out")


def waiter():
    gevent.sleep(0.02)
    with TenantLock(1, lock_dir=lock_dir):
        log.append("waiter-in")


gevent.joinall([gevent.spawn(holder), gevent.spawn(waiter)], timeout=5)
print(",".join(log))
"""


def test_waiting_greenlet_lets_holder_finish(tmp_path):
    script = tmp_path / "greenlets.py"
    script.write_text(GEVENT_SCRIPT)
    env = dict(os.environ, PYTHONPATH=ROOT + os.pathsep + os.environ.get("PYTHONPATH", ""))

    result = subprocess.run(
        [sys.executable, str(script), str(tmp_path / "locks")],
        cwd=ROOT, env=env, capture_output=True, text=True, timeout=20,
    )

    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "holder-in,holder-out,waiter-in"


def test_file_lock_held_elsewhere_is_waited_on(tmp_path):
    # An open file description of its own stands in for another worker process
    path = lock_file_path(4, str(tmp_path))
    fd = os.open(path, os.O_RDONLY | os.O_CREAT, 0o600)
    fcntl.flock(fd, fcntl.LOCK_EX)
    try:
        with pytest.raises(LockTimeoutError):
            TenantLock(4, timeout=0.1, lock_dir=str(tmp_path)).acquire()

        threading.Timer(0.05, fcntl.flock, args=(fd, fcntl.LOCK_UN)).start()
        with TenantLock(4, timeout=2, lock_dir=str(tmp_path)) as lock:
            assert lock.locked
    finally:
        os.close(fd)
