"""Main operator entrypoint using Kopf."""

import logging
import threading

import kopf

from . import crd, k8s
from .config import OperatorConfig
from .reconcile import REGISTRATIONS, CompanionReconciler
from .resync import Resyncer

operator_config = OperatorConfig.from_env()

# Configure logging
logging.basicConfig(
    level=getattr(logging, operator_config.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_resyncer = None
_stopped = threading.Event()


def enabled_registrations(cfg):
    """Registrations whose loop is switched on in the config."""
    enabled = {
        crd.DEPLOYMENT: cfg.watch_deployments,
        crd.JOB: cfg.watch_jobs,
    }
    return [r for r in REGISTRATIONS if enabled.get(r.parent_kind, False)]


def get_resyncer():
    """Get the shared resyncer, connecting on first use."""
    global _resyncer
    if _resyncer is None:
        store = k8s.ClusterStore.connect(request_timeout=operator_config.request_timeout)
        reconcilers = {
            r.parent_kind: CompanionReconciler(store, r.parent_kind, r.binding)
            for r in enabled_registrations(operator_config)
        }
        _resyncer = Resyncer(
            reconcilers,
            resync_interval=operator_config.resync_interval,
            retry_delay=operator_config.retry_delay,
            namespaces=operator_config.namespaces,
        )
    return _resyncer


def handle_event(registration, name, namespace, event_type=None):
    """Run one reconcile; a failure is logged and queued for retry."""
    kind = registration.parent_kind.kind
    logger.debug(f"Handling {event_type or 'LISTED'} event for {kind} {namespace}/{name}")
    return get_resyncer().reconcile_key(registration.parent_kind, namespace, name)


def register(registration, registry=None):
    """Watch a parent kind and reconcile its companion on every event."""
    kind = registration.parent_kind

    def companion_handler(name, namespace, type=None, **kwargs):
        handle_event(registration, name, namespace, event_type=type)

    kopf.on.event(
        kind.group,
        kind.version,
        kind.plural,
        id=f"{kind.plural}-vpa-companion",
        registry=registry,
    )(companion_handler)
    logger.info(f"Watching {kind.plural} with {registration.binding.name} binding")
    return companion_handler


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_):
    """Tune kopf, connect the Kubernetes clients and start the resync loop."""
    logging.getLogger().setLevel(getattr(logging, operator_config.log_level, logging.INFO))

    # Only warnings and errors become Kubernetes events
    settings.posting.level = logging.WARNING
    settings.execution.max_workers = operator_config.max_workers
    settings.networking.request_timeout = operator_config.request_timeout

    k8s.init_clients()
    _stopped.clear()
    get_resyncer().start(_stopped)


@kopf.on.cleanup()
def shutdown(**_):
    """Stop the resync loop."""
    _stopped.set()


for _registration in enabled_registrations(operator_config):
    register(_registration)


def run():
    """Run the operator until interrupted."""
    if operator_config.namespaces:
        kopf.run(namespaces=operator_config.namespaces)
    else:
        kopf.run(clusterwide=True)


if __name__ == "__main__":
    run()
