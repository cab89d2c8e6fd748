"""
options.py

Responsibility: Optional per-call headers for write, materialize and expand calls.

`RequestOptions` is immutable. Configure it once (or derive variants with the
`with_*` helpers) and hand it to the client; nothing here mutates shared state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from stereotype import conf
from stereotype.errors import ConfigError


@dataclass(frozen=True)
class RequestOptions:
    """
    Headers attached to write/materialize/expand requests.

    Fields left as None are not sent. `curies_header`, when set, replaces the
    value synthesized from `curies` entirely.
    """

    blacklist: str | None = None
    whitelist: str | None = None
    accept_preference: str | None = None
    accept_type: str | None = None
    max_depth: int | None = None
    soft_errors: bool | None = None
    curies: Mapping[str, str] = field(default_factory=dict)
    curies_header: str | None = None
    link_timeout_ms: int = conf.DEFAULT_LINK_TIMEOUT_MS

    def with_blacklist(self, value: str) -> RequestOptions:
        return replace(self, blacklist=str(value))

    def with_whitelist(self, value: str) -> RequestOptions:
        return replace(self, whitelist=str(value))

    def with_accept_preference(self, value: str) -> RequestOptions:
        return replace(self, accept_preference=str(value))

    def with_accept_type(self, value: str) -> RequestOptions:
        return replace(self, accept_type=str(value))

    def with_max_depth(self, value: int) -> RequestOptions:
        return replace(self, max_depth=int(value))

    def with_soft_errors(self, value: bool) -> RequestOptions:
        return replace(self, soft_errors=bool(value))

    def with_curie(self, rel: str, expansion: str) -> RequestOptions:
        curies = dict(self.curies)
        curies[str(rel)] = str(expansion)
        return replace(self, curies=curies)

    def with_curies_header(self, value: str) -> RequestOptions:
        return replace(self, curies_header=str(value))

    def with_link_timeout(self, timeout_ms: int) -> RequestOptions:
        return replace(self, link_timeout_ms=int(timeout_ms))

    def curie_value(self) -> str | None:
        if self.curies_header is not None:
            return self.curies_header
        if not self.curies:
            return None
        return ",".join(f"{k}{conf.CURIE_SEPARATOR}{v}" for k, v in self.curies.items())

    def headers(self) -> dict[str, str]:
        out: dict[str, str] = {}
        if self.blacklist:
            out[conf.HEADER_REL_BLACKLIST] = self.blacklist
        if self.whitelist:
            out[conf.HEADER_REL_WHITELIST] = self.whitelist
        if self.accept_preference:
            out[conf.HEADER_ACCEPT_PREFERENCE] = self.accept_preference
        if self.accept_type:
            out[conf.HEADER_ACCEPT] = self.accept_type
        if self.max_depth is not None:
            out[conf.HEADER_MAX_DEPTH] = str(self.max_depth)
        if self.soft_errors is not None:
            out[conf.HEADER_SOFT_ERRORS] = "true" if self.soft_errors else "false"
        curies = self.curie_value()
        if curies:
            out[conf.HEADER_REL_CURIES] = curies
        return out

    def link_timeout(self) -> str:
        timeout = self.link_timeout_ms
        return str(timeout if timeout and timeout > 0 else conf.DEFAULT_LINK_TIMEOUT_MS)


def options_from_mapping(data: Mapping[str, Any] | None) -> RequestOptions:
    """Build `RequestOptions` from a plain mapping (YAML config, CLI)."""
    if not data:
        return RequestOptions()
    known = {
        "blacklist",
        "whitelist",
        "accept_preference",
        "accept_type",
        "max_depth",
        "soft_errors",
        "curies",
        "curies_header",
        "link_timeout_ms",
    }
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown request options: {', '.join(unknown)}")
    kwargs: dict[str, Any] = dict(data)
    if "curies" in kwargs:
        curies = kwargs["curies"] or {}
        if not isinstance(curies, Mapping):
            raise ConfigError("`curies` must be a mapping when provided.")
        kwargs["curies"] = {str(k): str(v) for k, v in curies.items()}
    return RequestOptions(**kwargs)


def coerce_public(value: object) -> str:
    """Header value for the template public flag: "true" only for True or "true" (any case)."""
    if value is True:
        return "true"
    if isinstance(value, str) and value.lower() == "true":
        return "true"
    return "false"
