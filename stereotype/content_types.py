"""
content_types.py

Responsibility: Parse and validate template content types.

A content type is accepted when its base media type is one of `conf.BODY_TYPES`
and every entry of an optional `postprocessors` parameter is a known
post-processor, e.g. `text/mustache; postprocessors=mjml, pdf`.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stereotype import conf

POSTPROCESSORS_PARAM = "postprocessors"


@dataclass(frozen=True)
class ContentType:
    media_type: str
    params: dict[str, str] = field(default_factory=dict)

    @property
    def postprocessors(self) -> list[str]:
        raw = self.params.get(POSTPROCESSORS_PARAM)
        if raw is None:
            return []
        return [token.strip().lower() for token in raw.split(",")]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def parse_content_type(value: str) -> ContentType:
    """
    Split a raw Content-Type header value into its base type and parameters.

    Parameter names are lower-cased; parameter values keep their case but lose
    surrounding quotes. Parameters without `=` are ignored.
    """
    media, _, rest = value.partition(";")
    params: dict[str, str] = {}
    for raw in rest.split(";"):
        if "=" not in raw:
            continue
        k, v = raw.split("=", 1)
        k = k.strip().lower()
        if not k:
            continue
        params[k] = _unquote(v.strip())
    return ContentType(media_type=media.strip().lower(), params=params)


def is_supported_content_type(value: str | None) -> bool:
    if not value or not value.strip():
        return False
    ct = parse_content_type(value)
    if ct.media_type not in conf.BODY_TYPES.values():
        return False
    return all(token in conf.POSTPROCESSORS for token in ct.postprocessors)
