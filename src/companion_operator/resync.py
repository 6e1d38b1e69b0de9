"""Periodic resync and retry of failed reconciles.

kopf delivers each object once when the watch starts and then only on
change, and it never retries a failed event handler. The Resyncer closes
that gap: a key whose reconcile failed is retried on a growing delay, and
every resync interval all parents (plus the targets of managed VPAs) are
reconciled again.
"""

import logging
import threading
import time

from .errors import CompanionError, PolicyError

logger = logging.getLogger(__name__)


class Resyncer:
    """Reconciles keys and keeps retrying the ones that fail."""

    def __init__(self, reconcilers, resync_interval, retry_delay, namespaces=None, clock=time.monotonic):
        self.reconcilers = reconcilers
        self.resync_interval = resync_interval
        self.retry_delay = retry_delay
        self.namespaces = list(namespaces or [None])
        self.clock = clock

        # (parent_kind, namespace, name) -> (attempts, due)
        self._failures = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + resync_interval

    def pending(self):
        """Keys waiting for a retry, with the time they are due."""
        with self._lock:
            return {key: due for key, (_, due) in self._failures.items()}

    def record_failure(self, key):
        """Schedule a retry for key and return the delay in seconds."""
        with self._lock:
            attempts, _ = self._failures.get(key, (0, None))
            delay = min(self.retry_delay * 2 ** attempts, self.resync_interval)
            self._failures[key] = (attempts + 1, self.clock() + delay)
        return delay

    def record_success(self, key):
        with self._lock:
            self._failures.pop(key, None)

    def reconcile_key(self, parent_kind, namespace, name):
        """Reconcile one key. Failures are logged and scheduled for retry."""
        key = (parent_kind, namespace, name)
        reconciler = self.reconcilers[parent_kind]
        try:
            result = reconciler.reconcile(namespace, name)
        except PolicyError as e:
            delay = self.record_failure(key)
            logger.error(f"Binding error for {parent_kind.kind} {namespace}/{name}: {e}; retrying in {delay:.0f}s")
            return None
        except CompanionError as e:
            delay = self.record_failure(key)
            logger.error(f"Reconciliation error for {parent_kind.kind} {namespace}/{name}: {e}; retrying in {delay:.0f}s")
            return None
        except Exception as e:
            delay = self.record_failure(key)
            logger.error(
                f"Unexpected error reconciling {parent_kind.kind} {namespace}/{name}: {e}; retrying in {delay:.0f}s",
                exc_info=True,
            )
            return None

        self.record_success(key)
        return result

    def retry_due(self, now=None):
        """Reconcile every failed key whose retry time has come."""
        now = self.clock() if now is None else now
        with self._lock:
            due = [key for key, (_, at) in self._failures.items() if at <= now]
        for key in due:
            logger.info(f"Retrying reconcile of {key[0].kind} {key[1]}/{key[2]}")
            self.reconcile_key(*key)
        return len(due)

    def sweep_keys(self, parent_kind, reconciler):
        """Keys of all parents of a kind, plus targets of managed VPAs the binding cleans up."""
        keys = []
        for namespace in self.namespaces:
            for parent in reconciler.store.list_parents(parent_kind, namespace):
                keys.append((parent_kind, parent.metadata.namespace, parent.metadata.name))

            if not reconciler.binding.deletes_on_parent_absent:
                continue
            for vpa in reconciler.store.list_companions(namespace):
                target = vpa.get("spec", {}).get("targetRef", {})
                if target.get("kind") == parent_kind.kind and target.get("name"):
                    keys.append((parent_kind, vpa["metadata"]["namespace"], target["name"]))

        return list(dict.fromkeys(keys))

    def sweep(self):
        """Reconcile every known key once."""
        count = 0
        for parent_kind, reconciler in self.reconcilers.items():
            try:
                keys = self.sweep_keys(parent_kind, reconciler)
            except CompanionError as e:
                logger.error(f"Resync of {parent_kind.plural} failed: {e}")
                continue
            for key in keys:
                self.reconcile_key(*key)
            count += len(keys)
        logger.debug(f"Resync reconciled {count} objects")
        return count

    def run_once(self, now=None):
        """Retry due failures and sweep when the resync interval has passed."""
        now = self.clock() if now is None else now
        self.retry_due(now)
        if now >= self._next_sweep:
            self._next_sweep = now + self.resync_interval
            self.sweep()

    def run(self, stopped, tick=1.0):
        """Loop until the stopped event is set."""
        logger.info(f"Resync loop started (interval {self.resync_interval:.0f}s, retry delay {self.retry_delay:.0f}s)")
        while not stopped.wait(tick):
            self.run_once()
        logger.info("Resync loop stopped")

    def start(self, stopped):
        """Run the loop in a daemon thread."""
        thread = threading.Thread(target=self.run, args=(stopped,), name="vpa-companion-resync", daemon=True)
        thread.start()
        return thread
