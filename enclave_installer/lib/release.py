"""Release lookup: which version to install and where to download it from."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..errors import ReleaseLookupFailed
from .hostdetect import Architecture, OSFamily

logger = logging.getLogger(__name__)

DEFAULT_WINDOWS_MANIFEST_URL = "https://install.enclave.io/manifest/windows/setup.json"
DEFAULT_LATEST_VERSION_URL = "https://install.enclave.io/latest/version"
DEFAULT_ARTIFACT_URL_TEMPLATE = (
    "https://release.enclave.io/enclave_{platform}-{arch}-{channel}-{version}.{ext}"
)
HTTP_TIMEOUT_S = 30

_VERSION_RE = re.compile(r"^\d+(\.\d+){0,3}$")

# Manifest ReleaseType values eligible for the stable channel.
_STABLE_RELEASE_TYPES = {"ga", "stable"}

# Release artifacts are published under the stable name whatever the channel;
# the channel only picks the version (and the apt source list).
ARTIFACT_CHANNEL = "stable"


class Channel(str, Enum):
    STABLE = "stable"
    UNSTABLE = "unstable"


@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int = 0
    build: int = 0
    revision: int = 0

    @classmethod
    def parse(cls, text: str) -> "Version":
        t = (text or "").strip().lstrip("vV")
        if not _VERSION_RE.match(t):
            raise ValueError(f"Not a version: {text!r}")
        parts = [int(p) for p in t.split(".")]
        parts += [0] * (4 - len(parts))
        return cls(*parts)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.build}.{self.revision}"


@dataclass(frozen=True)
class ReleaseDescriptor:
    version: str
    channel: Channel
    download_urls: Dict[Architecture, str] = field(default_factory=dict)

    def url_for(self, arch: Architecture) -> Optional[str]:
        return self.download_urls.get(arch)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "channel": self.channel.value,
            "download_urls": {a.value: u for a, u in self.download_urls.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseDescriptor":
        return cls(
            version=str(data["version"]),
            channel=Channel(data["channel"]),
            download_urls={Architecture(a): u for a, u in (data.get("download_urls") or {}).items()},
        )


def artifact_urls(
    version: str,
    *,
    os_family: OSFamily = OSFamily.DEBIAN,
    template: str = DEFAULT_ARTIFACT_URL_TEMPLATE,
) -> Dict[Architecture, str]:
    windows = os_family == OSFamily.WINDOWS
    return {
        arch: template.format(
            platform="windows" if windows else "linux",
            arch=arch.value,
            channel=ARTIFACT_CHANNEL,
            version=version,
            ext="msi" if windows else "tar.gz",
        )
        for arch in Architecture
    }


class ReleaseClient:
    """Thin HTTP client for the release endpoints."""

    def __init__(
        self,
        *,
        manifest_url: Optional[str] = None,
        latest_version_url: str = DEFAULT_LATEST_VERSION_URL,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT_S,
    ):
        self.manifest_url = manifest_url
        self.latest_version_url = latest_version_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get(self, url: str) -> requests.Response:
        logger.info("GET %s", url)
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ReleaseLookupFailed(f"Unable to fetch {url}: {e}") from e
        return resp

    def fetch_latest_version(self) -> str:
        text = self._get(self.latest_version_url).text.strip()
        if not text:
            raise ReleaseLookupFailed("Unable to fetch latest version.")
        return text

    def fetch_manifest(self) -> Dict[str, Any]:
        if not self.manifest_url:
            raise ReleaseLookupFailed("No release manifest URL configured")
        try:
            data = self._get(self.manifest_url).json()
        except ValueError as e:
            raise ReleaseLookupFailed(f"Release manifest is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not data.get("ReleaseVersions"):
            raise ReleaseLookupFailed("Release manifest is empty")
        return data


def _eligible(release_type: str, channel: Channel) -> bool:
    if channel == Channel.UNSTABLE:
        return True
    return (release_type or "").strip().lower() in _STABLE_RELEASE_TYPES


def select_release(manifest: Dict[str, Any], channel: Channel) -> ReleaseDescriptor:
    """Pick the highest manifest entry eligible for channel."""

    candidates: List[Tuple[Version, Dict[str, Any]]] = []
    for entry in manifest.get("ReleaseVersions") or []:
        if not isinstance(entry, dict) or not _eligible(str(entry.get("ReleaseType", "")), channel):
            continue
        try:
            candidates.append((Version.parse(str(entry.get("Version", ""))), entry))
        except ValueError:
            logger.warning("Ignoring manifest entry with bad version: %r", entry.get("Version"))

    if not candidates:
        raise ReleaseLookupFailed(f"No {channel.value} release found in manifest")

    version, entry = max(candidates, key=lambda c: c[0])
    urls: Dict[Architecture, str] = {}
    for pkg in entry.get("Packages") or []:
        try:
            urls[Architecture(str(pkg.get("Architecture", "")).lower())] = str(pkg["Url"])
        except (AttributeError, KeyError, ValueError):
            continue

    return ReleaseDescriptor(version=str(entry["Version"]).strip(), channel=channel, download_urls=urls)


def resolve_release(
    channel: Channel,
    explicit_version: Optional[str] = None,
    *,
    client: ReleaseClient,
    os_family: OSFamily = OSFamily.DEBIAN,
    template: str = DEFAULT_ARTIFACT_URL_TEMPLATE,
) -> ReleaseDescriptor:
    if explicit_version:
        logger.info("Using requested version %s (no release lookup)", explicit_version)
        return ReleaseDescriptor(
            version=explicit_version,
            channel=channel,
            download_urls=artifact_urls(explicit_version, os_family=os_family, template=template),
        )

    if client.manifest_url:
        release = select_release(client.fetch_manifest(), channel)
    else:
        version = client.fetch_latest_version()
        release = ReleaseDescriptor(
            version=version,
            channel=channel,
            download_urls=artifact_urls(version, os_family=os_family, template=template),
        )

    logger.info("Resolved %s release %s", channel.value, release.version)
    return release
