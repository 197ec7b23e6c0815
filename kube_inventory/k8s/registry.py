"""Kind to resource table mapping."""

from typing import Dict, Optional

CUSTOM_RESOURCE_TABLE = "k8_custom_resource"

# Keyed by lower-cased kind.
KIND_TABLES: Dict[str, str] = {
    "clusterrole": "k8_cluster_role",
    "clusterrolebinding": "k8_cluster_role_binding",
    "configmap": "k8_config_map",
    "cronjob": "k8_cronjob",
    "customresourcedefinition": "k8_custom_resource_definition",
    "daemonset": "k8_daemonset",
    "deployment": "k8_deployment",
    "endpointslice": "k8_endpoint_slice",
    "endpoints": "k8_endpoints",
    "event": "k8_event",
    "horizontalpodautoscaler": "k8_horizontal_pod_autoscaler",
    "ingress": "k8_ingress",
    "job": "k8_job",
    "limitrange": "k8_limit_range",
    "namespace": "k8_namespace",
    "networkpolicy": "k8_network_policy",
    "node": "k8_node",
    "persistentvolume": "k8_persistent_volume",
    "persistentvolumeclaim": "k8_persistent_volume_claim",
    "pod": "k8_pod",
    "poddisruptionbudget": "k8_pod_disruption_budget",
    "podtemplate": "k8_pod_template",
    "replicaset": "k8_replicaset",
    "replicationcontroller": "k8_replication_controller",
    "resourcequota": "k8_resource_quota",
    "role": "k8_role",
    "rolebinding": "k8_role_binding",
    "secret": "k8_secret",
    "service": "k8_service",
    "serviceaccount": "k8_service_account",
    "statefulset": "k8_stateful_set",
    "storageclass": "k8_storage_class",
}

KNOWN_KINDS = frozenset(KIND_TABLES)


def table_for(kind: Optional[str]) -> str:
    """Return the table for ``kind``; unknown kinds map to the custom resource table."""
    if not kind:
        return CUSTOM_RESOURCE_TABLE
    return KIND_TABLES.get(kind.lower(), CUSTOM_RESOURCE_TABLE)
