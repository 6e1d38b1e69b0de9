"""Resource kind constants for parents and the VPA companion."""

from collections import namedtuple

# VerticalPodAutoscaler Group, Version, and Kind
VPA_GROUP = "autoscaling.k8s.io"
VPA_VERSION = "v1"
VPA_PLURAL = "verticalpodautoscalers"
VPA_KIND = "VerticalPodAutoscaler"

# API version string
VPA_API_VERSION = f"{VPA_GROUP}/{VPA_VERSION}"

# Companion naming and update policy
VPA_NAME_SUFFIX = "-vpa"
UPDATE_MODE_OFF = "Off"

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "vpa-companion-operator"


# Watched workload kinds
class ParentKind(namedtuple("ParentKind", ["kind", "group", "version", "plural"])):
    __slots__ = ()

    @property
    def api_version(self):
        return f"{self.group}/{self.version}" if self.group else self.version


DEPLOYMENT = ParentKind(kind="Deployment", group="apps", version="v1", plural="deployments")
JOB = ParentKind(kind="Job", group="batch", version="v1", plural="jobs")

PARENT_KINDS = {
    "deployment": DEPLOYMENT,
    "job": JOB,
}
