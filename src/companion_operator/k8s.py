"""Kubernetes client helpers."""

import logging

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from . import crd
from .errors import TransientStoreError

logger = logging.getLogger(__name__)

# Initialize clients
_apps_v1 = None
_batch_v1 = None
_custom_api = None


def init_clients():
    """Initialize Kubernetes clients."""
    global _apps_v1, _batch_v1, _custom_api

    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
    except config.ConfigException:
        config.load_kube_config()
        logger.info("Loaded kubeconfig")

    _apps_v1 = client.AppsV1Api()
    _batch_v1 = client.BatchV1Api()
    _custom_api = client.CustomObjectsApi()

    return _apps_v1, _batch_v1, _custom_api


def get_clients():
    """Get initialized Kubernetes clients."""
    if _apps_v1 is None or _batch_v1 is None or _custom_api is None:
        init_clients()
    return _apps_v1, _batch_v1, _custom_api


def _store_error(action, error):
    if isinstance(error, ApiException):
        return TransientStoreError(
            f"{action} failed: {error.status} {error.reason}",
            status=error.status,
            reason=error.reason,
        )
    return TransientStoreError(f"{action} failed: {error}")


class ClusterStore:
    """Read/write access to parents and VPA companions.

    Reads return None when the object does not exist. Every other failure
    is raised as TransientStoreError so that a failed query is never
    mistaken for an absent object.
    """

    def __init__(self, apps_v1, batch_v1, custom_api, request_timeout=None):
        self.apps_v1 = apps_v1
        self.batch_v1 = batch_v1
        self.custom_api = custom_api
        self.request_timeout = request_timeout

    @classmethod
    def connect(cls, request_timeout=None):
        """Build a store on top of the shared module clients."""
        apps_v1, batch_v1, custom_api = get_clients()
        return cls(apps_v1, batch_v1, custom_api, request_timeout=request_timeout)

    def _parent_reader(self, parent_kind):
        if parent_kind == crd.DEPLOYMENT:
            return self.apps_v1.read_namespaced_deployment
        if parent_kind == crd.JOB:
            return self.batch_v1.read_namespaced_job
        raise ValueError(f"Unsupported parent kind: {parent_kind.kind}")

    def get_parent(self, parent_kind, namespace, name):
        """Get a parent workload, or None if it does not exist."""
        read = self._parent_reader(parent_kind)
        try:
            return read(name=name, namespace=namespace, _request_timeout=self.request_timeout)
        except ApiException as e:
            if e.status == 404:
                return None
            raise _store_error(f"get {parent_kind.kind} {namespace}/{name}", e) from e
        except urllib3.exceptions.HTTPError as e:
            raise _store_error(f"get {parent_kind.kind} {namespace}/{name}", e) from e

    def get_companion(self, namespace, name):
        """Get a VPA as a dict, or None if it does not exist."""
        try:
            return self.custom_api.get_namespaced_custom_object(
                group=crd.VPA_GROUP,
                version=crd.VPA_VERSION,
                namespace=namespace,
                plural=crd.VPA_PLURAL,
                name=name,
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise _store_error(f"get VPA {namespace}/{name}", e) from e
        except urllib3.exceptions.HTTPError as e:
            raise _store_error(f"get VPA {namespace}/{name}", e) from e

    def create_companion(self, body):
        """Create a VPA. Returns False if one with the same name already exists."""
        namespace = body["metadata"]["namespace"]
        name = body["metadata"]["name"]
        try:
            self.custom_api.create_namespaced_custom_object(
                group=crd.VPA_GROUP,
                version=crd.VPA_VERSION,
                namespace=namespace,
                plural=crd.VPA_PLURAL,
                body=body,
                _request_timeout=self.request_timeout,
            )
            return True
        except ApiException as e:
            if e.status == 409:
                logger.info(f"VPA {namespace}/{name} already exists")
                return False
            raise _store_error(f"create VPA {namespace}/{name}", e) from e
        except urllib3.exceptions.HTTPError as e:
            raise _store_error(f"create VPA {namespace}/{name}", e) from e

    def delete_companion(self, namespace, name):
        """Delete a VPA. Returns False if it was already gone."""
        try:
            self.custom_api.delete_namespaced_custom_object(
                group=crd.VPA_GROUP,
                version=crd.VPA_VERSION,
                namespace=namespace,
                plural=crd.VPA_PLURAL,
                name=name,
                _request_timeout=self.request_timeout,
            )
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise _store_error(f"delete VPA {namespace}/{name}", e) from e
        except urllib3.exceptions.HTTPError as e:
            raise _store_error(f"delete VPA {namespace}/{name}", e) from e

    def list_parents(self, parent_kind, namespace=None):
        """List parent workloads in a namespace, or in all namespaces."""
        if parent_kind == crd.DEPLOYMENT:
            api = self.apps_v1
            namespaced, cluster = api.list_namespaced_deployment, api.list_deployment_for_all_namespaces
        elif parent_kind == crd.JOB:
            api = self.batch_v1
            namespaced, cluster = api.list_namespaced_job, api.list_job_for_all_namespaces
        else:
            raise ValueError(f"Unsupported parent kind: {parent_kind.kind}")

        try:
            if namespace:
                response = namespaced(namespace=namespace, _request_timeout=self.request_timeout)
            else:
                response = cluster(_request_timeout=self.request_timeout)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise _store_error(f"list {parent_kind.plural}", e) from e
        return response.items or []

    def list_companions(self, namespace=None):
        """List VPAs created by this operator."""
        selector = f"{crd.MANAGED_BY_LABEL}={crd.MANAGED_BY_VALUE}"
        try:
            if namespace:
                response = self.custom_api.list_namespaced_custom_object(
                    group=crd.VPA_GROUP,
                    version=crd.VPA_VERSION,
                    namespace=namespace,
                    plural=crd.VPA_PLURAL,
                    label_selector=selector,
                    _request_timeout=self.request_timeout,
                )
            else:
                response = self.custom_api.list_cluster_custom_object(
                    group=crd.VPA_GROUP,
                    version=crd.VPA_VERSION,
                    plural=crd.VPA_PLURAL,
                    label_selector=selector,
                    _request_timeout=self.request_timeout,
                )
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise _store_error("list VPAs", e) from e
        return response.get("items", [])
