"""
Shared pytest fixtures.
"""

import logging

import pytest
from kubernetes import client

from companion_operator import crd

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s", force=True)
logging.getLogger("companion_operator").setLevel(logging.DEBUG)


def make_parent(parent_kind, namespace, name, uid="0b6f7d2e-uid"):
    """Build a parent object the way the API client returns it."""
    metadata = client.V1ObjectMeta(name=name, namespace=namespace, uid=uid)
    if parent_kind == crd.JOB:
        return client.V1Job(
            api_version="batch/v1",
            kind="Job",
            metadata=metadata,
            spec=client.V1JobSpec(template=client.V1PodTemplateSpec()),
        )
    return client.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=metadata,
        spec=client.V1DeploymentSpec(
            selector=client.V1LabelSelector(),
            template=client.V1PodTemplateSpec(),
        ),
    )


class FakeStore:
    """In-memory stand-in for ClusterStore.

    Records every write and can be told to raise on a given operation.
    """

    def __init__(self):
        self.parents = {}
        self.companions = {}
        self.writes = []
        self.reads = []
        self.failures = {}

    def add_parent(self, parent_kind, namespace, name, uid="0b6f7d2e-uid"):
        parent = make_parent(parent_kind, namespace, name, uid=uid)
        self.parents[(parent_kind, namespace, name)] = parent
        return parent

    def remove_parent(self, parent_kind, namespace, name):
        del self.parents[(parent_kind, namespace, name)]

    def add_companion(self, body):
        meta = body["metadata"]
        self.companions[(meta["namespace"], meta["name"])] = body

    def fail(self, operation, error):
        self.failures[operation] = error

    def _check(self, operation):
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def get_parent(self, parent_kind, namespace, name):
        self.reads.append(("parent", namespace, name))
        self._check("get_parent")
        return self.parents.get((parent_kind, namespace, name))

    def get_companion(self, namespace, name):
        self.reads.append(("companion", namespace, name))
        self._check("get_companion")
        return self.companions.get((namespace, name))

    def create_companion(self, body):
        self._check("create_companion")
        meta = body["metadata"]
        key = (meta["namespace"], meta["name"])
        if key in self.companions:
            return False
        self.companions[key] = body
        self.writes.append(("create", key[0], key[1]))
        return True

    def delete_companion(self, namespace, name):
        self._check("delete_companion")
        if (namespace, name) not in self.companions:
            return False
        del self.companions[(namespace, name)]
        self.writes.append(("delete", namespace, name))
        return True

    def list_parents(self, parent_kind, namespace=None):
        return [
            parent
            for (kind, ns, _), parent in sorted(self.parents.items(), key=lambda item: item[0][1:])
            if kind == parent_kind and (namespace is None or ns == namespace)
        ]

    def list_companions(self, namespace=None):
        return [
            body
            for (ns, _), body in sorted(self.companions.items())
            if namespace is None or ns == namespace
        ]


@pytest.fixture
def store():
    """Provide an empty in-memory cluster store."""
    return FakeStore()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()
