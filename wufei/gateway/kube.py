"""kubernetes-asyncio implementation of the cluster gateway."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio import watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from wufei.errors import ClusterQueryError, LogStreamError, PodNotFoundError, WatchError
from wufei.gateway.base import ClusterGateway
from wufei.models.events import PodStatus, WatchEvent, WatchEventType
from wufei.models.sources import LogOptions, PodContainers, SourceKey
from wufei.observability.logging import get_logger

_log = get_logger("gateway.kube")

_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)
# ValueError: a line longer than the aiohttp read limit ("Chunk too big").
_STREAM_ERRORS = (*_TRANSPORT_ERRORS, ValueError)


class KubeGateway(ClusterGateway):
    """Talks to the Kubernetes API through a single shared ``ApiClient``."""

    def __init__(self, api_client: Any) -> None:
        self._api_client = api_client
        self._v1 = k8s_client.CoreV1Api(api_client)

    @classmethod
    async def connect(cls, kubeconfig: str | None = None, context: str | None = None) -> KubeGateway:
        """Configure the client from the in-cluster service account or a kubeconfig.

        An explicit *kubeconfig* or *context* skips in-cluster detection.
        """
        if kubeconfig is None and context is None:
            try:
                # load_incluster_config() is synchronous in kubernetes-asyncio
                k8s_config.load_incluster_config()
                _log.info("k8s client configured from in-cluster service account")
                return cls(k8s_client.ApiClient())
            except k8s_config.ConfigException:
                pass
        await k8s_config.load_kube_config(config_file=kubeconfig, context=context)
        _log.info("k8s client configured from kubeconfig", kubeconfig=kubeconfig, context=context)
        return cls(k8s_client.ApiClient())

    async def close(self) -> None:
        await self._api_client.close()

    async def list_containers(self, namespace: str, label_selector: str | None = None) -> list[PodContainers]:
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        try:
            pod_list = await self._v1.list_namespaced_pod(namespace, **kwargs)
        except ApiException as exc:
            raise ClusterQueryError(f"listing pods in {namespace} failed: {exc.status} {exc.reason}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise ClusterQueryError(f"listing pods in {namespace} failed: {exc}") from exc

        return [
            PodContainers(
                pod_name=pod.metadata.name,
                container_names=tuple(c.name for c in (pod.spec.containers or [])),
            )
            for pod in pod_list.items
        ]

    async def get_pod_status(self, namespace: str, pod_name: str) -> PodStatus:
        try:
            pod = await self._v1.read_namespaced_pod_status(pod_name, namespace)
        except ApiException as exc:
            if exc.status == 404:
                raise PodNotFoundError(namespace, pod_name) from exc
            raise ClusterQueryError(f"reading {namespace}/{pod_name} failed: {exc.status} {exc.reason}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise ClusterQueryError(f"reading {namespace}/{pod_name} failed: {exc}") from exc

        phase = pod.status.phase if pod.status is not None else None
        return PodStatus(phase=phase or "Unknown")

    async def watch_events(self, namespace: str) -> AsyncIterator[WatchEvent]:
        # Start from the current resourceVersion so existing events are not
        # replayed as ADDED.
        try:
            existing = await self._v1.list_namespaced_event(namespace, limit=1)
            resource_version = existing.metadata.resource_version
        except ApiException as exc:
            raise WatchError(f"listing events in {namespace} failed: {exc.status} {exc.reason}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise WatchError(f"listing events in {namespace} failed: {exc}") from exc

        w = watch.Watch()
        try:
            async with w.stream(
                self._v1.list_namespaced_event,
                namespace=namespace,
                resource_version=resource_version,
            ) as stream:
                async for raw in stream:
                    # Lines that are not JSON (e.g. a proxy error page) come back as str.
                    if not isinstance(raw, dict):
                        _log.warning("watch_line_unparsable", namespace=namespace, line=str(raw)[:200])
                        continue
                    yield _to_watch_event(raw)
        except ApiException as exc:
            raise WatchError(f"event watch on {namespace} failed: {exc.status} {exc.reason}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise WatchError(f"event watch on {namespace} failed: {exc}") from exc
        except Exception as exc:  # noqa: BLE001
            # kubernetes_asyncio raises a bare Exception for malformed watch objects
            raise WatchError(f"event watch on {namespace} broke: {exc}") from exc

    async def stream_logs(
        self,
        namespace: str,
        pod_name: str,
        container_name: str,
        options: LogOptions,
    ) -> AsyncIterator[bytes]:
        key = SourceKey(pod_name, container_name)
        kwargs: dict[str, Any] = {
            "container": container_name,
            "follow": options.follow,
            "previous": options.previous,
        }
        if options.tail_lines is not None:
            kwargs["tail_lines"] = options.tail_lines
        if options.since_seconds is not None:
            kwargs["since_seconds"] = options.since_seconds

        try:
            response = await self._v1.read_namespaced_pod_log(
                pod_name,
                namespace,
                _preload_content=False,
                **kwargs,
            )
        except ApiException as exc:
            raise LogStreamError(key, f"opening log stream failed: {exc.status} {exc.reason}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise LogStreamError(key, f"opening log stream failed: {exc}") from exc

        try:
            async for line in response.content:
                yield line
        except _STREAM_ERRORS as exc:
            raise LogStreamError(key, f"log stream broke: {exc}") from exc
        finally:
            response.release()


def _to_watch_event(raw: dict[str, Any]) -> WatchEvent:
    """Convert a kubernetes-asyncio watch item into a WatchEvent."""
    try:
        event_type = WatchEventType(raw.get("type", "ERROR"))
    except ValueError:
        event_type = WatchEventType.ERROR

    obj = raw.get("raw_object") or {}
    if not isinstance(obj, dict):
        return WatchEvent(type=event_type)
    involved = obj.get("involvedObject") or {}
    return WatchEvent(
        type=event_type,
        message=str(obj.get("message") or ""),
        reason=str(obj.get("reason") or ""),
        involved_kind=str(involved.get("kind") or ""),
        involved_name=str(involved.get("name") or ""),
    )
