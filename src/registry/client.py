"""Registry HTTP client: version lists and per-version metadata."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from common.retry import RetryPolicy
from errors import PackageNotFound, RegistryError, VersionNotFound
from lockfile.integrity import normalize_integrity
from versioning.cache import TTLCache
from .provider import MetadataProvider, PackageVersionDescriptor, registry_reference

logger = logging.getLogger(__name__)


class RegistryClient(MetadataProvider):
    """Metadata provider backed by the registry REST API.

    Endpoints:
        GET {base}/api/v1/packages/{name}/versions
        GET {base}/api/v1/packages/{name}/{version}
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.base_url = (base_url or Constants.REGISTRY_URL).rstrip("/")
        self.token = token if token is not None else Constants.REGISTRY_TOKEN
        self.policy = policy or RetryPolicy()
        self.cache = cache if cache is not None else TTLCache(Constants.HTTP_CACHE_TTL_SEC)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": "pkglock/1.0"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, *parts: str) -> str:
        return "/".join([f"{self.base_url}/api/v1/packages"] + [quote(p, safe="") for p in parts])

    def list_versions(self, name: str) -> List[str]:
        """Fetch the published versions of ``name``.

        Raises:
            PackageNotFound: the registry answered 404.
        """
        cache_key = f"versions:{name}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return list(cached)

        url = self._url(name, "versions")
        status_code, _, data = get_json(url, headers=self._headers(), policy=self.policy)
        if status_code == 404:
            raise PackageNotFound(name)
        if status_code != 200 or not isinstance(data, dict):
            raise RegistryError(
                f"Unexpected response listing versions of {name}", url=safe_url(url), status=status_code
            )

        versions = []
        for item in data.get("versions") or []:
            # Entries are either plain strings or {"version": ..., "published_at": ...}
            if isinstance(item, dict):
                item = item.get("version")
            if isinstance(item, str) and item:
                versions.append(item)

        if is_debug_enabled(logger):
            logger.debug(
                "Fetched version list",
                extra=extra_context(
                    event="registry_lookup",
                    component="registry_client",
                    action="list_versions",
                    package=name,
                    count=len(versions)
                )
            )
        self.cache.set(cache_key, tuple(versions))
        return versions

    def _fetch_version(self, name: str, version: str) -> Dict[str, Any]:
        cache_key = f"version:{name}@{version}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        url = self._url(name, version)
        status_code, _, data = get_json(url, headers=self._headers(), policy=self.policy)
        if status_code == 404:
            raise VersionNotFound(name, version)
        if status_code != 200 or not isinstance(data, dict):
            raise RegistryError(
                f"Unexpected response for {name}@{version}", url=safe_url(url), status=status_code
            )
        self.cache.set(cache_key, data)
        return data

    def get_dependencies(self, name: str, version: str) -> Dict[str, str]:
        data = self._fetch_version(name, version)
        deps = data.get("dependencies") or {}
        if not isinstance(deps, dict):
            raise RegistryError(f"Malformed dependencies for {name}@{version}")
        return {str(k): str(v) for k, v in deps.items()}

    def describe(self, name: str, version: str) -> PackageVersionDescriptor:
        data = self._fetch_version(name, version)
        integrity = data.get("integrity") or data.get("content_hash")
        kind = data.get("format") or data.get("type")
        if integrity:
            try:
                integrity = normalize_integrity(str(integrity))
            except ValueError as exc:
                raise RegistryError(
                    f"Malformed integrity for {name}@{version}: {exc}",
                    url=safe_url(self._url(name, version)),
                ) from exc
        return PackageVersionDescriptor(
            name=name,
            version=version,
            dependencies=self.get_dependencies(name, version),
            kind=str(kind) if kind else None,
            resolved=data.get("tarball_url") or registry_reference(name, version),
            integrity=integrity or None,
        )
