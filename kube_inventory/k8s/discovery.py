"""API discovery cache and resource type resolution."""

import threading
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from kubernetes.client.exceptions import ApiException
from pydantic import BaseModel, Field

from ..core.context import RunContext
from ..core.errors import DiscoveryError, DiscoveryNotInitializedError, ResolutionError
from ..model.kubernetes import ResourceTypeDescriptor
from ..utils.logger import get_logger
from .client import ClusterClient

logger = get_logger(__name__)


class DiscoveredResource(BaseModel):
    """A resource advertised by discovery, with the metadata used for lookups."""

    descriptor: ResourceTypeDescriptor
    verbs: List[str] = Field(default_factory=list)
    singular_name: str = ""
    short_names: List[str] = Field(default_factory=list)
    preferred: bool = False

    @property
    def listable(self) -> bool:
        return "list" in self.verbs

    def matches_resource(self, name: str) -> bool:
        name = name.lower()
        return (
            name == self.descriptor.resource
            or (bool(self.singular_name) and name == self.singular_name.lower())
            or name in (short.lower() for short in self.short_names)
        )


class DiscoveryCache:
    """Resource lists for every served group version, fetched once.

    ``initialize`` is safe to call from several threads: the first caller
    builds the cache while the others wait on the same lock, and later calls
    return immediately. Entries are ordered core group first, then named
    groups in server order with each group's preferred version first, which
    is also the lookup priority.
    """

    def __init__(self, client: ClusterClient):
        self.client = client
        self._lock = threading.Lock()
        self._initialized = False
        self._entries: List[DiscoveredResource] = []
        self._group_versions: List[str] = []
        self.failed_groups: Dict[str, str] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            self._build()
            self._initialized = True

    def _build(self) -> None:
        self.failed_groups = {}
        self._group_versions = []
        try:
            group_versions = self._served_group_versions()
        except ApiException as e:
            raise DiscoveryError(f"failed to discover server resources: {e}", status=e.status) from e
        except Exception as e:
            raise DiscoveryError(f"failed to discover server resources: {e}") from e

        entries: List[DiscoveredResource] = []
        for group, version, preferred in group_versions:
            descriptor_gv = f"{group}/{version}" if group else version
            try:
                resource_list = self.client.get_resource_list(descriptor_gv)
            except Exception as e:
                # Unreachable groups (e.g. a down aggregated API) reduce coverage only.
                self.failed_groups[descriptor_gv] = str(e)
                continue

            self._group_versions.append(descriptor_gv)
            for res in resource_list.get("resources") or []:
                name = res.get("name", "")
                if not name or "/" in name:
                    continue
                entries.append(
                    DiscoveredResource(
                        descriptor=ResourceTypeDescriptor(
                            group=group,
                            version=version,
                            resource=name,
                            kind=res.get("kind", ""),
                            namespaced=bool(res.get("namespaced", False)),
                        ),
                        verbs=list(res.get("verbs") or []),
                        singular_name=res.get("singularName") or "",
                        short_names=list(res.get("shortNames") or []),
                        preferred=preferred,
                    )
                )

        self._entries = entries
        if self.failed_groups:
            logger.warning(
                f"Partial discovery failure for {len(self.failed_groups)} group version(s): "
                + ", ".join(f"{gv}: {err}" for gv, err in self.failed_groups.items())
            )
        logger.info(
            f"Discovered {len(entries)} resources across {len(self._group_versions)} group versions"
        )

    def _served_group_versions(self) -> List[Tuple[str, str, bool]]:
        served: List[Tuple[str, str, bool]] = []
        for index, version in enumerate(self.client.get_core_versions()):
            served.append(("", version, index == 0))

        for group in self.client.get_api_groups():
            name = group.get("name", "")
            preferred = (group.get("preferredVersion") or {}).get("version")
            versions = [v.get("version") for v in group.get("versions") or [] if v.get("version")]
            if preferred in versions:
                versions.remove(preferred)
                versions.insert(0, preferred)
            for version in versions:
                served.append((name, version, version == preferred))
        return served

    def _require(self) -> None:
        if not self._initialized:
            raise DiscoveryNotInitializedError()

    def preferred_resources(self) -> "OrderedDict[str, List[DiscoveredResource]]":
        """Each group/resource once, from the first version that serves it, grouped by group version."""
        self._require()
        seen = set()
        grouped: "OrderedDict[str, List[DiscoveredResource]]" = OrderedDict()
        for entry in self._entries:
            key = (entry.descriptor.group, entry.descriptor.resource)
            if key in seen:
                continue
            seen.add(key)
            grouped.setdefault(entry.descriptor.group_version, []).append(entry)
        return grouped

    def descriptor_for_kind(self, kind: str, group: Optional[str] = None) -> ResourceTypeDescriptor:
        self._require()
        for entry in self._entries:
            if entry.descriptor.kind.lower() != kind.lower():
                continue
            if group is not None and entry.descriptor.group != group:
                continue
            return entry.descriptor
        raise LookupError(f'no matches for kind "{kind}"' + (f' in group "{group}"' if group else ""))

    def kind_for_resource(self, resource: str, group: Optional[str] = None) -> Tuple[str, str]:
        """Return ``(kind, group)`` for a plural, singular or short resource name."""
        self._require()
        for entry in self._entries:
            if group is not None and entry.descriptor.group != group:
                continue
            if entry.matches_resource(resource):
                return entry.descriptor.kind, entry.descriptor.group
        raise LookupError(
            f'no matches for resource "{resource}"' + (f' in group "{group}"' if group else "")
        )


class ResourceTypeResolver:
    """Resolves user input (``Deployment``, ``deployments``, ``deploy.apps``) to a descriptor."""

    def __init__(self, cache: DiscoveryCache):
        self.cache = cache

    def resolve(self, ctx: RunContext, name: str) -> ResourceTypeDescriptor:
        if not self.cache.initialized:
            raise DiscoveryNotInitializedError()
        ctx.raise_if_done()

        base, group = _split_group(name)
        try:
            return self.cache.descriptor_for_kind(base, group)
        except LookupError as kind_error:
            try:
                kind, kind_group = self.cache.kind_for_resource(base, group)
                return self.cache.descriptor_for_kind(kind, kind_group)
            except LookupError as resource_error:
                raise ResolutionError(name, kind_error, resource_error) from None


def _split_group(name: str) -> Tuple[str, Optional[str]]:
    """``deployments.apps`` -> ``("deployments", "apps")``; plain names have no group."""
    base, sep, group = name.strip().partition(".")
    if sep and group:
        return base, group
    return base, None
