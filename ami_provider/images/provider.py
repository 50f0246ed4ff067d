"""Provider: single entry point for image resolution."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .. import config as ap_config
from ..cache import SingleFlight, TTLCache, hash_structure
from ..context import ResolutionContext, background
from ..errors import ImageResolutionError, VersionDiscoveryError
from ..monitoring.change_monitor import ChangeMonitor
from ..monitoring.registry import PATH_DEFAULT, PATH_SELECTOR, ResolutionRegistry
from .defaults import DefaultImageResolver
from .families import get_image_family
from .interface import ImageSet, InstanceType, NodeClass, VersionAPI
from .resolver import ImageResolver
from .selectors import compile_selector_terms

logger = logging.getLogger(__name__)

KUBERNETES_VERSION_CACHE_KEY = "kubernetesVersion"


class Provider:
    """Resolves the images eligible for a node class.

    Node classes without selector terms get their family's default images;
    otherwise the selector terms are compiled and queried. Both paths are
    cached, and concurrent misses on one cache key share a single
    resolution.

    Example:
        provider = Provider(ec2, ssm, kubernetes.client.VersionApi())
        images = provider.get(NodeClass(name="default", image_family="AL2"))
        by_image = provider.map_to_instance_types(images, instance_types)
    """

    def __init__(
        self,
        ec2: Any,
        ssm: Any,
        version_api: VersionAPI,
        cache: Optional[TTLCache] = None,
        version_cache: Optional[TTLCache] = None,
        change_monitor: Optional[ChangeMonitor] = None,
        registry: Optional[ResolutionRegistry] = None,
    ):
        """Initialize Provider.

        Args:
            ec2: boto3 EC2 client
            ssm: boto3 SSM client
            version_api: Orchestration API used to discover the server version
            cache: Image set cache (TTL from config if None)
            version_cache: Kubernetes version cache (TTL from config if None)
            change_monitor: Change monitor for log de-duplication
            registry: Optional registry recording each resolution
        """
        self.version_api = version_api
        if cache is None:
            cache = TTLCache(ap_config.image_cache_ttl(), name="images")
        if version_cache is None:
            version_cache = TTLCache(ap_config.version_cache_ttl(), name="kubernetes-version")
        self.cache = cache
        self.version_cache = version_cache
        self.change_monitor = change_monitor or ChangeMonitor()
        self.registry = registry
        self.image_resolver = ImageResolver(ec2)
        self.default_resolver = DefaultImageResolver(ssm, self.image_resolver)
        self._flight = SingleFlight()

    def kubernetes_version(self, ctx: Optional[ResolutionContext] = None) -> str:
        """Return the "major.minor" version of the orchestration plane.

        Raises:
            VersionDiscoveryError: the version API call failed
        """
        version, found = self.version_cache.get(KUBERNETES_VERSION_CACHE_KEY)
        if found:
            return version

        ctx = ctx or background()
        ctx.check()
        try:
            info = self.version_api.get_code()
        except Exception as exc:
            raise VersionDiscoveryError(f"getting kubernetes version, {exc}", cause=exc) from exc
        minor = str(info.minor)
        if minor.endswith("+"):
            minor = minor[:-1]
        version = f"{info.major}.{minor}"

        self.version_cache.set_default(KUBERNETES_VERSION_CACHE_KEY, version)
        if self.change_monitor.has_changed("kubernetes-version", version):
            logger.debug("Discovered kubernetes version %s", version)
        return version

    def get(self, node_class: NodeClass, ctx: Optional[ResolutionContext] = None) -> ImageSet:
        """Resolve the images for node_class, sorted newest first.

        Raises:
            ImageResolutionError: resolution failed; nothing was cached
        """
        ctx = ctx or background()
        path = PATH_SELECTOR if node_class.image_selector_terms else PATH_DEFAULT
        family_name: Optional[str] = None
        version: Optional[str] = None
        try:
            if path == PATH_DEFAULT:
                family = get_image_family(node_class.image_family)
                family_name = family.name
                version = self.kubernetes_version(ctx)
                images = self._cached(
                    f"{family.name}/{version}",
                    lambda: self.default_resolver.resolve(family, version, ctx),
                    ctx,
                )
            else:
                groups = compile_selector_terms(list(node_class.image_selector_terms))
                images = self._cached(
                    hash_structure(groups),
                    lambda: self.image_resolver.resolve(groups, ctx),
                    ctx,
                )
        except ImageResolutionError as exc:
            self._record(node_class, path, family=family_name, version=version, error=str(exc))
            raise

        images = images.sort()
        key = f"amis/{str(node_class.is_node_template).lower()}/{node_class.name}"
        if self.change_monitor.has_changed(key, images):
            logger.debug(
                "Discovered images for %s: ids=%s count=%d", node_class.name, images, len(images)
            )
        self._record(node_class, path, images=images, family=family_name, version=version)
        return images

    def _cached(
        self, key: str, resolve: Callable[[], ImageSet], ctx: ResolutionContext
    ) -> ImageSet:
        """Serve key from the cache, resolving and storing it on a miss.

        Concurrent misses on the same key share one call to resolve. Failures
        are never cached. Waiting on another caller honours ctx, and a caller
        whose leader was cancelled resolves with its own ctx instead.
        """
        images, found = self.cache.get(key)
        if found:
            logger.debug("Image cache hit for key=%s", key)
            return images

        def resolve_and_store() -> ImageSet:
            stored, hit = self.cache.get(key)
            if hit:
                return stored
            logger.debug("Image cache miss for key=%s", key)
            resolved = resolve()
            self.cache.set_default(key, resolved)
            return resolved

        return self._flight.do(key, resolve_and_store, ctx)

    def _record(
        self,
        node_class: NodeClass,
        path: str,
        images: Optional[ImageSet] = None,
        family: Optional[str] = None,
        version: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        if self.registry is None:
            return
        self.registry.record(
            node_class.name,
            path,
            image_ids=images.ids() if images is not None else None,
            family=family,
            kubernetes_version=version,
            error=error,
        )

    def map_to_instance_types(
        self, images: ImageSet, instance_types: Iterable[InstanceType]
    ) -> Dict[str, List[InstanceType]]:
        """Map image IDs to the instance types each is the newest compatible image for."""
        return images.map_to_instance_types(instance_types)

    def cache_stats(self) -> Dict[str, int]:
        return {
            "image_sets": len(self.cache),
            "kubernetes_version": len(self.version_cache),
            "in_flight": self._flight.in_flight(),
        }
