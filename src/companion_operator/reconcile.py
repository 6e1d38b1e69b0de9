"""Core reconciliation logic."""

import logging
from dataclasses import dataclass
from enum import Enum

from . import crd
from .binding import BindingPolicy, ExplicitBinding, OwnedBinding
from .templates import companion_name, create_vpa_manifest, target_ref

logger = logging.getLogger(__name__)


class Action(str, Enum):
    NOOP = "noop"
    CREATE = "create"
    DELETE = "delete"


@dataclass(frozen=True)
class ReconcileResult:
    action: Action
    namespace: str
    parent_name: str
    companion_name: str
    changed: bool = False


@dataclass(frozen=True)
class Registration:
    """A watched parent kind and the binding policy its loop uses."""

    parent_kind: crd.ParentKind
    binding: BindingPolicy


REGISTRATIONS = (
    Registration(crd.DEPLOYMENT, ExplicitBinding()),
    Registration(crd.JOB, OwnedBinding()),
)


def decide(parent_found, companion_found, binding):
    """Decide what to do from the observed parent and companion state."""
    if parent_found:
        return Action.NOOP if companion_found else Action.CREATE
    if companion_found and binding.deletes_on_parent_absent:
        return Action.DELETE
    return Action.NOOP


class CompanionReconciler:
    """Keeps one VPA in step with one parent kind.

    Every call re-reads the cluster and holds no state between calls, so
    repeated or out-of-order invocations for the same key are safe. Store
    errors propagate unchanged; retrying is left to the caller.
    """

    def __init__(self, store, parent_kind, binding):
        self.store = store
        self.parent_kind = parent_kind
        self.binding = binding

    def reconcile(self, namespace, name):
        """Reconcile the companion of the parent at namespace/name."""
        kind = self.parent_kind.kind
        vpa_name = companion_name(name)

        parent = self.store.get_parent(self.parent_kind, namespace, name)
        if parent is None and not self.binding.deletes_on_parent_absent:
            # Owned companions are collected by the garbage collector
            logger.debug(f"{kind} {namespace}/{name} not found, nothing to do")
            return ReconcileResult(Action.NOOP, namespace, name, vpa_name)

        companion = self.store.get_companion(namespace, vpa_name)
        action = decide(parent is not None, companion is not None, self.binding)

        if action == Action.CREATE:
            return self._create(namespace, name, vpa_name, parent)

        if action == Action.DELETE:
            deleted = self.store.delete_companion(namespace, vpa_name)
            if deleted:
                logger.info(f"Deleted VPA {namespace}/{vpa_name} because {kind} {name} was deleted")
            return ReconcileResult(Action.DELETE, namespace, name, vpa_name, changed=deleted)

        logger.debug(f"VPA {namespace}/{vpa_name} is up to date")
        return ReconcileResult(Action.NOOP, namespace, name, vpa_name)

    def _create(self, namespace, name, vpa_name, parent):
        owner_refs = self.binding.owner_references(self.parent_kind, parent)
        body = create_vpa_manifest(
            vpa_name,
            namespace,
            target_ref(self.parent_kind, name),
            owner_refs=owner_refs,
        )

        created = self.store.create_companion(body)
        if created:
            logger.info(f"Created VPA {namespace}/{vpa_name} for {self.parent_kind.kind} {name}")
        return ReconcileResult(Action.CREATE, namespace, name, vpa_name, changed=created)
