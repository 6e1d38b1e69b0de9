"""
Operator entrypoint tests: config loading, handler registration and
queueing of failed reconciles for retry.
"""

import kopf
import pytest
from pydantic import ValidationError

from companion_operator import crd, main
from companion_operator.config import OperatorConfig
from companion_operator.errors import TransientStoreError
from companion_operator.reconcile import REGISTRATIONS, Action, CompanionReconciler
from companion_operator.resync import Resyncer


def _registration(parent_kind):
    return next(r for r in REGISTRATIONS if r.parent_kind == parent_kind)


class TestOperatorConfig:
    def test_defaults(self):
        cfg = OperatorConfig.from_env({})

        assert cfg.log_level == "INFO"
        assert cfg.namespaces == []
        assert cfg.watch_deployments is True
        assert cfg.watch_jobs is True
        assert cfg.resync_interval == 300
        assert cfg.max_workers == 4

    def test_from_env(self):
        cfg = OperatorConfig.from_env(
            {
                "LOG_LEVEL": "debug",
                "WATCH_NAMESPACES": "default, batch ,",
                "WATCH_JOBS": "false",
                "RESYNC_INTERVAL_SECONDS": "60",
                "RETRY_DELAY_SECONDS": "5",
                "MAX_WORKERS": "8",
            }
        )

        assert cfg.log_level == "DEBUG"
        assert cfg.namespaces == ["default", "batch"]
        assert cfg.watch_jobs is False
        assert cfg.resync_interval == 60
        assert cfg.retry_delay == 5
        assert cfg.max_workers == 8

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            OperatorConfig.from_env({"RESYNC_INTERVAL_SECONDS": "1"})
        with pytest.raises(ValidationError):
            OperatorConfig.from_env({"MAX_WORKERS": "zero"})


class TestEnabledRegistrations:
    def test_both_loops_by_default(self):
        kinds = [r.parent_kind for r in main.enabled_registrations(OperatorConfig())]
        assert kinds == [crd.DEPLOYMENT, crd.JOB]

    def test_job_loop_switched_off(self):
        kinds = [r.parent_kind for r in main.enabled_registrations(OperatorConfig(watch_jobs=False))]
        assert kinds == [crd.DEPLOYMENT]


class TestHandleEvent:
    @pytest.fixture(autouse=True)
    def resyncer(self, store, clock, monkeypatch):
        """Point the handlers at the in-memory store."""
        reconcilers = {
            r.parent_kind: CompanionReconciler(store, r.parent_kind, r.binding) for r in REGISTRATIONS
        }
        resyncer = Resyncer(reconcilers, resync_interval=300, retry_delay=30, clock=clock)
        monkeypatch.setattr(main, "_resyncer", resyncer)
        return resyncer

    def test_creates_vpa(self, store):
        store.add_parent(crd.DEPLOYMENT, "default", "orders")

        result = main.handle_event(_registration(crd.DEPLOYMENT), "orders", "default", event_type="ADDED")

        assert result.action == Action.CREATE
        assert ("default", "orders-vpa") in store.companions

    def test_store_error_is_queued_for_retry(self, store, resyncer, clock):
        store.add_parent(crd.DEPLOYMENT, "default", "orders")
        store.fail("get_companion", TransientStoreError("get failed", status=500))

        assert main.handle_event(_registration(crd.DEPLOYMENT), "orders", "default") is None
        assert resyncer.pending() == {(crd.DEPLOYMENT, "default", "orders"): clock.now + 30}

        # No new event arrives; the retry alone converges the key
        store.failures.clear()
        resyncer.run_once(clock.advance(30))

        assert ("default", "orders-vpa") in store.companions
        assert resyncer.pending() == {}

    def test_policy_error_is_logged_not_raised(self, store, resyncer, caplog):
        store.add_parent(crd.JOB, "default", "batchjob1", uid=None)

        assert main.handle_event(_registration(crd.JOB), "batchjob1", "default") is None

        assert store.companions == {}
        assert (crd.JOB, "default", "batchjob1") in resyncer.pending()
        assert "Binding error for Job default/batchjob1" in caplog.text

    def test_registered_handler_reconciles(self, store):
        handler = main.register(_registration(crd.JOB), registry=kopf.OperatorRegistry())
        store.add_parent(crd.JOB, "default", "batchjob1")

        handler(name="batchjob1", namespace="default", type="ADDED", body={}, logger=None)

        assert ("default", "batchjob1-vpa") in store.companions

    def test_deleted_event_rereads_state(self, store):
        store.add_parent(crd.DEPLOYMENT, "default", "orders")
        handler = main.register(_registration(crd.DEPLOYMENT), registry=kopf.OperatorRegistry())
        handler(name="orders", namespace="default", type="ADDED")

        store.remove_parent(crd.DEPLOYMENT, "default", "orders")
        handler(name="orders", namespace="default", type="DELETED")

        assert store.companions == {}


class TestGetResyncer:
    def test_builds_reconcilers_for_enabled_loops(self, monkeypatch):
        monkeypatch.setattr(main, "_resyncer", None)
        monkeypatch.setattr(main, "operator_config", OperatorConfig(watch_jobs=False, retry_delay=7))
        monkeypatch.setattr(main.k8s.ClusterStore, "connect", classmethod(lambda cls, request_timeout=None: "store"))

        resyncer = main.get_resyncer()

        assert list(resyncer.reconcilers) == [crd.DEPLOYMENT]
        assert resyncer.reconcilers[crd.DEPLOYMENT].store == "store"
        assert resyncer.retry_delay == 7
        assert main.get_resyncer() is resyncer
