"""Kubernetes client implementation of the object store."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from ... import metrics
from ...constants import API_GROUP, API_VERSION, FIELD_MANAGER, PLURAL_POSTGRESQL, ResourceKind
from ...utils.errors import NotFoundError, classify_api_exception

logger = logging.getLogger(__name__)

_CLIENT_ERRORS = (ApiException, Urllib3HTTPError, TimeoutError, ConnectionError)


class KubeClient:
    """Object store backed by the Kubernetes API server.

    All calls use raw JSON responses so that live objects have the same
    camelCase shape as the manifests produced by the builders.
    """

    def __init__(self, api_client: Any = None, request_timeout: float = 10.0) -> None:
        """Initialize the client.

        Args:
            api_client: Optional configured kubernetes ApiClient
            request_timeout: Timeout in seconds applied to every call
        """
        self.core = client.CoreV1Api(api_client)
        self.apps = client.AppsV1Api(api_client)
        self.custom = client.CustomObjectsApi(api_client)
        self.request_timeout = request_timeout
        self._operations: dict[ResourceKind, dict[str, Callable[..., Any]]] = {
            ResourceKind.CONFIGURATION: {
                "read": self.core.read_namespaced_config_map,
                "create": self.core.create_namespaced_config_map,
                "patch": self.core.patch_namespaced_config_map,
            },
            ResourceKind.STORAGE: {
                "read": self.core.read_namespaced_persistent_volume_claim,
                "create": self.core.create_namespaced_persistent_volume_claim,
                "patch": self.core.patch_namespaced_persistent_volume_claim,
            },
            ResourceKind.NETWORK: {
                "read": self.core.read_namespaced_service,
                "create": self.core.create_namespaced_service,
                "patch": self.core.patch_namespaced_service,
            },
            ResourceKind.WORKLOAD: {
                "read": self.apps.read_namespaced_stateful_set,
                "create": self.apps.create_namespaced_stateful_set,
                "patch": self.apps.patch_namespaced_stateful_set,
            },
        }

    def _call(self, resource_kind: str, operation: str, fn: Callable[..., Any], **kwargs: Any) -> dict[str, Any]:
        start_time = time.time()
        try:
            response = fn(
                _preload_content=False,
                _request_timeout=self.request_timeout,
                **kwargs,
            )
            metrics.api_call_total.labels(
                resource_kind=resource_kind, operation=operation, result="success"
            ).inc()
            return json.loads(response.data)
        except _CLIENT_ERRORS as e:
            metrics.api_call_total.labels(
                resource_kind=resource_kind, operation=operation, result="error"
            ).inc()
            raise classify_api_exception(e, f"{operation} {resource_kind}") from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(
                resource_kind=resource_kind, operation=operation
            ).observe(duration)

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any] | None:
        try:
            return self._call(kind.value, "read", self._operations[kind]["read"], name=name, namespace=namespace)
        except NotFoundError:
            return None

    def create(self, kind: ResourceKind, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._call(
            kind.value,
            "create",
            self._operations[kind]["create"],
            namespace=namespace,
            body=body,
            field_manager=FIELD_MANAGER,
        )

    def patch(
        self,
        kind: ResourceKind,
        namespace: str,
        name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        return self._call(
            kind.value,
            "patch",
            self._operations[kind]["patch"],
            name=name,
            namespace=namespace,
            body=body,
            field_manager=FIELD_MANAGER,
        )

    def get_cluster(self, namespace: str, name: str) -> dict[str, Any] | None:
        try:
            return self._call(
                "PostgreSQL",
                "read",
                self.custom.get_namespaced_custom_object,
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=PLURAL_POSTGRESQL,
                name=name,
            )
        except NotFoundError:
            return None

    def patch_cluster_status(
        self,
        namespace: str,
        name: str,
        status: dict[str, Any],
    ) -> dict[str, Any]:
        return self._call(
            "PostgreSQL",
            "patch_status",
            self.custom.patch_namespaced_custom_object_status,
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=PLURAL_POSTGRESQL,
            name=name,
            body={"status": status},
            field_manager=FIELD_MANAGER,
        )


def create_kube_client(request_timeout: float = 10.0) -> KubeClient:
    """Create a KubeClient using in-cluster config, falling back to kubeconfig.

    Args:
        request_timeout: Timeout in seconds applied to every call

    Returns:
        KubeClient instance
    """
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return KubeClient(request_timeout=request_timeout)
