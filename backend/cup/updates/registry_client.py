"""
Registry Client for Image Update Detection

Talks the OCI distribution protocol to any registry:
- auth challenge discovery (GET /v2/)
- bearer token exchange, one request per registry for all repositories
- manifest digest lookup (HEAD /v2/<repo>/manifests/<tag>)
- paginated tag listing (GET /v2/<repo>/tags/list, Link rel="next")

Every request goes through the shared retrying HttpClient.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

from cup.models.config_models import RegistryConfig
from cup.updates.errors import (
    AuthRejected,
    AuthRequired,
    MalformedServerResponse,
    NotFound,
    RegistryError,
    UnsupportedAuthScheme,
)
from cup.updates.types import Image
from cup.utils.http_client import HttpClient, HttpResponse
from cup.utils.link import parse_next_link
from cup.utils.registry_credentials import get_registry_config
from cup.version import VersionTag

logger = logging.getLogger(__name__)

MANIFEST_ACCEPT = (
    "application/vnd.docker.distribution.manifest.v2+json, "
    "application/vnd.docker.distribution.manifest.list.v2+json, "
    "application/vnd.oci.image.index.v1+json"
)

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


@dataclass(frozen=True)
class Challenge:
    """Bearer challenge from a registry's WWW-Authenticate header."""
    realm: str
    service: Optional[str] = None


def parse_www_authenticate(header: Optional[str], registry: str = "") -> Challenge:
    """
    Parse a WWW-Authenticate header into a bearer Challenge.

    Example:
        Input: 'Bearer realm="https://ghcr.io/token",service="ghcr.io"'
        Output: Challenge(realm="https://ghcr.io/token", service="ghcr.io")

    Raises:
        UnsupportedAuthScheme: missing header, non-Bearer scheme or no realm
    """
    if not header:
        raise UnsupportedAuthScheme(f"Registry {registry} requires authentication but sent no challenge")

    scheme, _, params_str = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        raise UnsupportedAuthScheme(
            f"Registry {registry} requires unsupported authentication scheme {scheme!r}"
        )

    params = {key.lower(): value for key, value in _CHALLENGE_PARAM.findall(params_str)}
    realm = params.get("realm")
    if not realm:
        raise UnsupportedAuthScheme(f"WWW-Authenticate header from {registry} has no realm")

    logger.debug(f"Parsed WWW-Authenticate: realm={realm}, service={params.get('service')}")
    return Challenge(realm=realm, service=params.get("service"))


class RegistryClient:
    """
    Client for OCI-compliant registries.

    Registry settings (insecure flag) are looked up by host in `registries`.
    The client holds no per-request state, so one instance is shared by all
    concurrent checks of a run.
    """

    def __init__(self, http: HttpClient, registries: Optional[Dict[str, RegistryConfig]] = None):
        self.http = http
        self.registries = registries or {}

    def base_url(self, registry: str) -> str:
        """https://<registry>, or http:// when the registry is marked insecure."""
        protocol = "http" if get_registry_config(self.registries, registry).insecure else "https"
        return f"{protocol}://{registry}"

    async def probe_auth(self, registry: str) -> Optional[Challenge]:
        """
        Discover whether a registry requires a token.

        Returns:
            None when anonymous access works (or the probe failed, which is
            logged and treated the same), otherwise the bearer Challenge

        Raises:
            UnsupportedAuthScheme: 401 with a non-Bearer or missing challenge
        """
        url = f"{self.base_url(registry)}/v2/"
        try:
            response = await self.http.get(url)
        except RegistryError as e:
            logger.warning(f"Auth probe for {registry} failed, continuing unauthenticated: {e.message}")
            return None

        if response.status == 200:
            logger.debug(f"Registry {registry} allows anonymous access")
            return None
        if response.status == 401:
            return parse_www_authenticate(response.headers.get("WWW-Authenticate"), registry)

        logger.warning(
            f"Unexpected status {response.status} during auth discovery for {registry}, "
            f"continuing unauthenticated"
        )
        return None

    async def get_token(
        self,
        images: Iterable[Image],
        challenge: Challenge,
        credentials: Optional[str] = None,
    ) -> str:
        """
        Fetch one bearer token covering every repository among `images`.

        The request carries one `scope=repository:<repo>:pull` parameter per
        distinct repository, in first-seen order.

        Args:
            images: Images of a single registry
            challenge: Challenge returned by probe_auth
            credentials: Optional base64 "username:password" for Basic auth

        Raises:
            AuthRejected: the token endpoint refused the credentials
            MalformedServerResponse: no token in the response
            RegistryError: transport failures
        """
        repositories: List[str] = []
        for image in images:
            if image.parts.repository not in repositories:
                repositories.append(image.parts.repository)

        query = []
        if challenge.service is not None:
            query.append(f"service={quote(challenge.service, safe='')}")
        query.extend(f"scope=repository:{repository}:pull" for repository in repositories)
        separator = "&" if "?" in challenge.realm else "?"
        url = f"{challenge.realm}{separator}{'&'.join(query)}" if query else challenge.realm

        headers = {}
        if credentials:
            headers["Authorization"] = f"Basic {credentials}"

        response = await self.http.get(url, headers=headers)
        if response.status in (401, 403):
            raise AuthRejected(f"Token request to {challenge.realm} was rejected ({response.status})", url)
        if response.status >= 400:
            raise RegistryError(
                f"Token request to {challenge.realm} failed with status {response.status}: {response.text()[:200]}",
                url,
            )

        data = response.json()
        token = None
        if isinstance(data, dict):
            token = data.get("token") or data.get("access_token")
        if not token or not isinstance(token, str):
            raise MalformedServerResponse(f"Token endpoint {challenge.realm} returned no token", url)

        logger.debug(f"Obtained token from {challenge.realm} for {len(repositories)} repositories")
        return token

    async def get_digest(self, image: Image, token: Optional[str] = None) -> str:
        """
        Resolve the image's tag to the manifest digest a pull would record.

        Raises:
            AuthRequired / AuthRejected: 401 without / with a token
            NotFound: 404
            MalformedServerResponse: no Docker-Content-Digest header
            RegistryError: other failures
        """
        parts = image.parts
        url = f"{self.base_url(parts.registry)}/v2/{parts.repository}/manifests/{parts.tag}"
        headers = {"Accept": MANIFEST_ACCEPT}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        response = await self.http.head(url, headers=headers)
        self._raise_for_status(response, url, token)

        digest = response.headers.get("Docker-Content-Digest")
        if not digest:
            raise MalformedServerResponse(f"Server returned no digest for {image.reference}", url)
        logger.debug(f"Resolved {image.reference} → {digest[:19]}...")
        return digest

    async def list_tags(self, image: Image, token: Optional[str] = None) -> List[VersionTag]:
        """
        Collect every remote tag that belongs to the same family as the local one.

        Pages are followed through the Link header until no next link is
        returned. A page URL seen before ends the walk. Tags are parsed with
        the image's scheme, filtered to the local tag's template and shape,
        and deduplicated keeping first-seen order.
        """
        local = image.version
        if local is None:
            raise ValueError(f"{image.reference} has no version to compare tags against")

        parts = image.parts
        url: Optional[str] = f"{self.base_url(parts.registry)}/v2/{parts.repository}/tags/list"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        seen_tags = set()
        visited = set()
        tags: List[VersionTag] = []
        pages = 0
        while url is not None and url not in visited:
            visited.add(url)
            response = await self.http.get(url, headers=headers)
            self._raise_for_status(response, url, token)
            pages += 1

            for raw_tag in self._page_tags(response, url):
                if raw_tag in seen_tags:
                    continue
                seen_tags.add(raw_tag)
                candidate = image.scheme.parse(raw_tag)
                if candidate is not None and candidate.same_shape(local):
                    tags.append(candidate)

            url = parse_next_link(response.headers.get("Link"), response.url or url)

        logger.debug(f"{image.reference}: {len(tags)} matching tags across {pages} page(s)")
        return tags

    async def latest_tag(self, image: Image, token: Optional[str] = None) -> Optional[VersionTag]:
        """Greatest remote tag comparable with the local one, or None."""
        candidates = await self.list_tags(image, token)
        return image.scheme.latest(candidates, image.version)

    def _page_tags(self, response: HttpResponse, url: str) -> List[str]:
        data = response.json()
        if not isinstance(data, dict) or "tags" not in data:
            raise MalformedServerResponse(f"Tag list from {url} has no tags array", url)
        tags = data["tags"]
        if tags is None:
            return []
        if not isinstance(tags, list):
            raise MalformedServerResponse(f"Tag list from {url} has no tags array", url)
        return [tag for tag in tags if isinstance(tag, str)]

    def _raise_for_status(self, response: HttpResponse, url: str, token: Optional[str]):
        if response.status == 401:
            if token:
                raise AuthRejected("Token was not accepted by the registry", url)
            raise AuthRequired("Registry requires authentication", url)
        if response.status == 404:
            raise NotFound("Not found", url)
        if response.status >= 400:
            raise RegistryError(f"Registry returned status {response.status}", url)
