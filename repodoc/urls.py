"""Repository URL parsing and credential handling."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict
from urllib.parse import urlsplit, urlunsplit

from .errors import RepositoryURLError

_USERINFO_RE = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")
_SCP_RE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*)$")


@dataclass(frozen=True)
class RepositoryRef:
    """Host/owner/name triple identifying a hosted repository."""

    host: str
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_repository_url(url: str) -> RepositoryRef:
    """Return the host, owner, and repository name encoded in ``url``.

    Accepts ``https://host/owner/name(.git)`` (extra path segments such as
    ``/tree/main`` are ignored), ``ssh://git@host/owner/name`` and the
    scp-like ``git@host:owner/name.git`` form.
    """
    candidate = url.strip()
    if "://" in candidate:
        parts = urlsplit(candidate)
        host = parts.hostname or ""
        path = parts.path
    else:
        match = _SCP_RE.match(candidate)
        if not match:
            raise RepositoryURLError(f"Unrecognized repository URL: {redact(url)}")
        host = match.group("host")
        path = match.group("path")

    segments = [segment for segment in path.split("/") if segment]
    if not host or len(segments) < 2:
        raise RepositoryURLError(f"Repository URL must include an owner and a name: {redact(url)}")

    owner, name = segments[0], segments[1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not owner or not name:
        raise RepositoryURLError(f"Repository URL must include an owner and a name: {redact(url)}")
    return RepositoryRef(host=host.lower(), owner=owner, name=name)


def with_credentials(url: str, token: str | None) -> str:
    """Embed ``token`` as the userinfo of an http(s) clone URL."""
    if not token:
        return url
    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        return url
    host = parts.hostname
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"{token}@{host}", parts.path, parts.query, parts.fragment))


def auth_headers(token: str | None) -> Dict[str, str]:
    """Return the bearer header used for private repository access."""
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def redact(text: str) -> str:
    """Replace any userinfo embedded in URLs within ``text`` with ``***``."""
    return _USERINFO_RE.sub(lambda match: f"{match.group('scheme')}***@", text)


__all__ = [
    "RepositoryRef",
    "auth_headers",
    "parse_repository_url",
    "redact",
    "with_credentials",
]
