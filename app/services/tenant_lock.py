"""
Per-tenant exclusive lock.

Every read/modify sequence on a tenant's scores runs inside
``tenant_lock(tenant_id)``. Inside one process, holders of a tenant are
serialized by a ``threading.Lock`` (a cooperative lock once gevent has
patched ``threading``). Across worker processes they are serialized by an OS
advisory lock (``flock``) on ``<TENANT_DB_DIR>/<tenant_id>.lock``, which is
always taken non-blocking and polled with ``time.sleep`` so a waiting
greenlet never stalls the OS thread its holder runs on. Locks on different
tenants never block each other.
"""
import errno
import fcntl
import logging
import os
import threading
import time
from contextlib import contextmanager

from flask import current_app

from app.errors import LockTimeoutError

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.01
_POLL_INTERVAL_MAX = 0.1

# lock file path -> process-local lock
_process_locks = {}
_process_locks_guard = threading.Lock()


def lock_file_path(tenant_id, lock_dir=None):
    lock_dir = lock_dir or current_app.config["TENANT_DB_DIR"]
    return os.path.join(lock_dir, f"{int(tenant_id)}.lock")


def _process_lock(path):
    with _process_locks_guard:
        lock = _process_locks.get(path)
        if lock is None:
            lock = _process_locks[path] = threading.Lock()
        return lock


class TenantLock:
    """
    Exclusive lock scoped to one tenant.

    ``timeout=None`` waits until the holder releases. A number of seconds
    bounds the whole wait and raises LockTimeoutError on expiry.
    """

    def __init__(self, tenant_id, timeout=None, lock_dir=None):
        self.tenant_id = int(tenant_id)
        self.timeout = timeout
        self.path = lock_file_path(self.tenant_id, lock_dir)
        self._local = _process_lock(self.path)
        self._fd = None

    @property
    def locked(self):
        return self._fd is not None

    def acquire(self):
        if self._fd is not None:
            raise RuntimeError(f"tenant lock {self.tenant_id} already held by this object")

        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        if not self._acquire_local(deadline):
            self._timed_out()

        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            fd = os.open(self.path, os.O_RDONLY | os.O_CREAT, 0o600)
            try:
                self._flock(fd, deadline)
            except BaseException:
                os.close(fd)
                raise
        except BaseException:
            self._local.release()
            raise
        self._fd = fd

    def _acquire_local(self, deadline):
        if deadline is None:
            return self._local.acquire()
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return self._local.acquire(blocking=False)
        return self._local.acquire(timeout=remaining)

    def _flock(self, fd, deadline):
        interval = _POLL_INTERVAL
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except OSError as e:
                if e.errno not in (errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK):
                    raise
            if deadline is None:
                time.sleep(interval)
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._timed_out()
                time.sleep(min(interval, remaining))
            interval = min(interval * 2, _POLL_INTERVAL_MAX)

    def _timed_out(self):
        logger.warning("tenant lock %s not acquired within %.3fs", self.tenant_id, self.timeout)
        raise LockTimeoutError(f"tenant {self.tenant_id} is busy, retry later")

    def release(self):
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
            self._local.release()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


_UNSET = object()


@contextmanager
def tenant_lock(tenant_id, timeout=_UNSET):
    """Hold the tenant's lock for the duration of the block."""
    if timeout is _UNSET:
        timeout = current_app.config.get("TENANT_LOCK_TIMEOUT")
    with TenantLock(tenant_id, timeout=timeout):
        yield
