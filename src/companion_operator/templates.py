"""Kubernetes resource templates."""

from . import crd


def companion_name(parent_name):
    """Derive the VPA name for a parent workload."""
    return f"{parent_name}{crd.VPA_NAME_SUFFIX}"


def target_ref(parent_kind, parent_name):
    """Build the VPA targetRef pointing at a parent workload."""
    return {
        "kind": parent_kind.kind,
        "apiVersion": parent_kind.api_version,
        "name": parent_name,
    }


def create_vpa_manifest(name, namespace, target, owner_refs=None):
    """Create VPA manifest with optional owner references.

    The update mode is fixed to Off: the VPA only publishes
    recommendations and never evicts pods.
    """
    metadata = {
        "name": name,
        "namespace": namespace,
        "labels": {
            crd.MANAGED_BY_LABEL: crd.MANAGED_BY_VALUE,
        },
    }
    if owner_refs:
        metadata["ownerReferences"] = owner_refs

    return {
        "apiVersion": crd.VPA_API_VERSION,
        "kind": crd.VPA_KIND,
        "metadata": metadata,
        "spec": {
            "targetRef": target,
            "updatePolicy": {
                "updateMode": crd.UPDATE_MODE_OFF,
            },
        },
    }
