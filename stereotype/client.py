"""
client.py

Responsibility: Isolate all direct Stereotype REST API interaction.

This module must be the only place that:
- Constructs Stereotype endpoints
- Sends HTTP requests to the service
- Interprets Stereotype responses / error payloads

Every public method is a single round trip (two for `get_template`). The client
keeps no cache; its only state is the immutable configuration it was built with.
"""

from __future__ import annotations

import base64
import copy
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterator
from urllib.parse import urlsplit

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, stop_after_delay

from stereotype import conf
from stereotype.config import ClientConfig, config_from_env, load_config
from stereotype.content_types import is_supported_content_type
from stereotype.errors import (
    ConfigError,
    InvalidIdentifierError,
    InvalidTemplateUrlError,
    StereotypeHTTPError,
    TemplateNotFoundError,
    UnsupportedContentTypeError,
)
from stereotype.options import RequestOptions, coerce_public
from stereotype.tracing import NullTracer, Segment, Tracer

logger = logging.getLogger(__name__)

_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS"})
_UNSAFE_ID_CHARS = frozenset("/\\?#%")


@dataclass(frozen=True)
class TemplateSummary:
    template_id: str
    can_copy: bool = False
    can_edit: bool = False


@dataclass(frozen=True)
class Template:
    template_id: str
    content_type: str
    is_public: bool
    body: str
    name: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class TemplateWriteResult:
    template_id: str
    status: int
    location: str | None = None
    data: Any = field(default_factory=dict)


@dataclass(frozen=True)
class DirectMaterialization:
    status: int
    result: str | bytes


def normalize_token(access_token: object) -> str:
    """Drop any scheme prefix such as "Bearer ", i.e. everything up to the first space."""
    token = str(access_token)
    return token[token.find(" ") + 1 :]


def _is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, StereotypeHTTPError):
        return False
    if exc.status is None:
        return isinstance(exc.__cause__, requests.RequestException)
    return exc.status in conf.RETRYABLE_STATUSES


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning("Stereotype request failed (attempt %d), retrying: %s", state.attempt_number, exc)


def _is_socket_timeout(body: str) -> bool:
    return any(sig in (body or "") for sig in conf.EXPAND_TIMEOUT_SIGNATURES)


def _cache_buster(skip_cache: bool) -> dict[str, str]:
    return {"skip_cache": uuid.uuid4().hex} if skip_cache else {}


def _check_segment(identifier: str) -> str:
    """Reject ids that could change the request path or add a query once joined into a URL."""
    if identifier in {".", ".."} or any(ch in identifier for ch in _UNSAFE_ID_CHARS):
        raise InvalidIdentifierError(identifier)
    return identifier


class StereotypeClient:
    def __init__(
        self,
        access_token: str,
        config: ClientConfig | None = None,
        *,
        options: RequestOptions | None = None,
        tracer: Tracer | None = None,
        session: requests.Session | None = None,
    ) -> None:
        token = normalize_token(access_token)
        if not token.strip():
            raise ConfigError("Stereotype access token is required.")
        self._token = token
        self.config = config or ClientConfig()
        self.options = options or RequestOptions()
        self._tracer: Tracer = tracer or NullTracer()
        self._session = session or requests.Session()

    @classmethod
    def from_config_file(
        cls,
        path: str | Path,
        *,
        access_token: str | None = None,
        tracer: Tracer | None = None,
        session: requests.Session | None = None,
    ) -> StereotypeClient:
        loaded = load_config(path)
        token = access_token or loaded.token
        if not token:
            raise ConfigError(f"No access token given and none found in {path}")
        return cls(token, loaded.client, options=loaded.options, tracer=tracer, session=session)

    @classmethod
    def from_env(
        cls,
        *,
        tracer: Tracer | None = None,
        session: requests.Session | None = None,
    ) -> StereotypeClient:
        loaded = config_from_env()
        if not loaded.token:
            raise ConfigError("Stereotype access token is required (set STEREOTYPE_TOKEN).")
        return cls(loaded.token, loaded.client, options=loaded.options, tracer=tracer, session=session)

    def with_options(self, options: RequestOptions | None = None, **changes: Any) -> StereotypeClient:
        """
        Return a client sharing this one's transport but with different default options.

        Either pass a whole `RequestOptions`, or keyword changes applied on top of the
        current defaults, e.g. `client.with_options(blacklist="up")`.
        """
        opts = options or self.options
        if changes:
            opts = replace(opts, **changes)
        clone = copy.copy(self)
        clone.options = opts
        return clone

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> StereotypeClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # URLs

    @property
    def templates_url(self) -> str:
        return f"{self.config.base_url}{conf.TEMPLATES_PATH}"

    @property
    def materializations_url(self) -> str:
        return f"{self.config.base_url}{conf.MATERIALIZATIONS_PATH}"

    def _template_url(self, template_id: str) -> str:
        return f"{self.templates_url}/{template_id}"

    def template_id_from_url(self, url: str) -> str:
        """
        Convert a full template URL into a template id.

        The URL must be exactly `<templates_url>/<id>`; anything pointing elsewhere
        is rejected without touching the network.
        """
        url = str(url or "")
        segment = url.rsplit("/", 1)[-1]
        if not segment or self._template_url(segment) != url:
            raise InvalidTemplateUrlError(url)
        try:
            return _check_segment(segment)
        except InvalidIdentifierError as e:
            raise InvalidTemplateUrlError(url) from e

    # Plumbing

    def _headers(self) -> dict[str, str]:
        return {conf.HEADER_AUTHORIZATION: f"Bearer {self._token}"}

    def _crawl_headers(self, options: RequestOptions | None) -> dict[str, str]:
        opts = options or self.options
        headers = opts.headers()
        headers[conf.HEADER_LINK_TIMEOUT] = opts.link_timeout()
        return headers

    @contextmanager
    def _traced(self, name: str, url: str, method: str, **annotations: Any) -> Iterator[Segment]:
        segment = self._tracer.capture(f"Stereotype.{name}")
        segment.add_annotation("URL", url)
        segment.add_annotation("REST Action", method)
        for key, value in annotations.items():
            segment.add_annotation(key.replace("_", " "), value)
        try:
            yield segment
        except Exception as e:
            if isinstance(e, StereotypeHTTPError) and e.status is not None:
                segment.add_annotation("Response Code", e.status)
            segment.add_annotation("Error Message", str(e))
            segment.close(e)
            raise
        segment.close()

    def _send(
        self,
        method: str,
        url: str,
        *,
        action: str,
        segment: Segment,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        data: bytes | None = None,
    ) -> requests.Response:
        all_headers = self._headers()
        all_headers.update(headers or {})
        idempotent = method in _IDEMPOTENT_METHODS
        attempts = 1 + (self.config.num_retries if idempotent else 0)
        deadline = self.config.deadline
        started = time.monotonic()

        def attempt() -> requests.Response:
            remaining = deadline - (time.monotonic() - started)
            if remaining <= 0:
                raise StereotypeHTTPError(
                    f"{action}: deadline of {self.config.deadline_ms} ms exceeded",
                    method=method,
                    url=url,
                )
            logger.debug("%s %s", method, url)
            try:
                r = self._session.request(
                    method,
                    url,
                    headers=all_headers,
                    params=params or None,
                    json=json_body,
                    data=data,
                    timeout=min(self.config.timeout, remaining),
                )
            except requests.RequestException as e:
                raise StereotypeHTTPError(f"{action}: {e}", method=method, url=url) from e
            if not 200 <= r.status_code < 300:
                logger.warning("Stereotype %s %s failed with %s", method, url, r.status_code)
                raise StereotypeHTTPError(
                    f"{action}: {r.status_code} {r.reason or ''}".rstrip(),
                    status=r.status_code,
                    method=method,
                    url=url,
                    body=r.text,
                )
            return r

        retrying = Retrying(
            stop=stop_after_attempt(attempts) | stop_after_delay(deadline),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        )
        response = retrying(attempt)
        segment.add_annotation("Response Code", response.status_code)
        return response

    def _body(self, response: requests.Response) -> str | bytes:
        return response.content if self.config.is_binary_response else response.text

    @staticmethod
    def _json(response: requests.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise StereotypeHTTPError(
                f"{action}: response is not valid JSON",
                status=response.status_code,
                url=response.url or "",
                body=response.text,
            ) from e

    @staticmethod
    def _require_id(template_id: str | None) -> str:
        if template_id is None or not str(template_id).strip():
            raise TemplateNotFoundError(template_id)
        return _check_segment(str(template_id))

    # Templates

    def list_templates(self, public: bool = False, skip_cache: bool = False) -> list[TemplateSummary]:
        action = "Unable to list templates"
        url = self.templates_url
        with self._traced("listTemplates", url, "GET") as segment:
            params = {"public": "true" if public else "false", **_cache_buster(skip_cache)}
            r = self._send("GET", url, action=action, segment=segment, params=params)
            data = self._json(r, action)
            if not isinstance(data, list):
                raise StereotypeHTTPError(f"{action}: expected a JSON array", status=r.status_code, url=url)
            return [
                TemplateSummary(
                    template_id=str(item.get("templateId") or ""),
                    can_copy=bool(item.get("canCopy", False)),
                    can_edit=bool(item.get("canEdit", False)),
                )
                for item in data
                if isinstance(item, dict)
            ]

    def get_template(self, template_id: str, skip_cache: bool = False) -> Template:
        """
        Fetch a template's metadata and body and merge them.

        The metadata (`Accept: application/json`) and the raw body are requested
        concurrently.
        """
        action = "Unable to get template"
        template_id = self._require_id(template_id)
        url = self._template_url(template_id)
        with self._traced("getTemplate", url, "GET", Template=template_id) as segment:
            params = _cache_buster(skip_cache)
            with ThreadPoolExecutor(max_workers=2) as pool:
                meta_future = pool.submit(
                    self._send,
                    "GET",
                    url,
                    action=action,
                    segment=segment,
                    headers={conf.HEADER_ACCEPT: "application/json"},
                    params=params,
                )
                body_future = pool.submit(self._send, "GET", url, action=action, segment=segment, params=params)
                meta_r = meta_future.result()
                body_r = body_future.result()

            meta = self._json(meta_r, action)
            if not isinstance(meta, dict):
                meta = {}
            content_type = meta.get("contentType") or body_r.headers.get(conf.HEADER_CONTENT_TYPE, "")
            return Template(
                template_id=str(meta.get("templateId") or template_id),
                content_type=str(content_type),
                is_public=coerce_public(meta.get("isPublic")) == "true",
                body=body_r.text,
                name=meta.get("name"),
                description=meta.get("description"),
            )

    def get_template_by_url(self, url: str, skip_cache: bool = False) -> Template:
        return self.get_template(self.template_id_from_url(url), skip_cache=skip_cache)

    def _write_template(
        self,
        method: str,
        url: str,
        template_id: str | None,
        body: str | bytes | None,
        content_type: str,
        is_public: object,
        name: str | None,
        description: str | None,
        options: RequestOptions | None,
    ) -> TemplateWriteResult:
        action = "Unable to create/update template"
        op = "putTemplate" if method == "PUT" else "createTemplate"
        with self._traced(op, url, method, Template=template_id or "") as segment:
            if not is_supported_content_type(content_type):
                raise UnsupportedContentTypeError(content_type)

            headers = (options or self.options).headers()
            headers[conf.HEADER_CONTENT_TYPE] = content_type
            headers[conf.HEADER_TEMPLATE_PUBLIC] = coerce_public(is_public)
            if name:
                headers[conf.HEADER_TEMPLATE_NAME] = name
            if description:
                headers[conf.HEADER_TEMPLATE_DESCRIPTION] = description

            payload = body or ""
            if isinstance(payload, str):
                payload = payload.encode("utf-8")

            r = self._send(method, url, action=action, segment=segment, headers=headers, data=payload)

            location = r.headers.get(conf.HEADER_LOCATION)
            created_id = urlsplit(location).path.rstrip("/").rsplit("/", 1)[-1] if location else None
            data: Any = {}
            if r.content:
                try:
                    data = r.json()
                except ValueError:
                    logger.debug("Template write response is not JSON; ignoring body")
            return TemplateWriteResult(
                template_id=created_id or template_id or "",
                status=r.status_code,
                location=location,
                data=data,
            )

    def create_template(
        self,
        body: str | bytes | None,
        content_type: str,
        is_public: object = False,
        name: str | None = None,
        description: str | None = None,
        options: RequestOptions | None = None,
    ) -> TemplateWriteResult:
        return self._write_template(
            "POST", self.templates_url, None, body, content_type, is_public, name, description, options
        )

    def put_template(
        self,
        template_id: str,
        body: str | bytes | None,
        content_type: str,
        is_public: object = False,
        name: str | None = None,
        description: str | None = None,
        options: RequestOptions | None = None,
    ) -> TemplateWriteResult:
        """
        Create or replace the template stored under `template_id`.

        `is_public` is sent as "true" only for True or the string "true" in any case.
        """
        template_id = self._require_id(template_id)
        return self._write_template(
            "PUT",
            self._template_url(template_id),
            template_id,
            body,
            content_type,
            is_public,
            name,
            description,
            options,
        )

    def delete_template(self, template_id: str) -> int:
        template_id = self._require_id(template_id)
        url = self._template_url(template_id)
        with self._traced("deleteTemplate", url, "DELETE", Template=template_id) as segment:
            r = self._send("DELETE", url, action="Unable to delete template", segment=segment)
            return r.status_code

    # Materializations

    def materialize(
        self,
        template_id: str,
        property_bag: Any,
        *,
        get_materialization_id: bool = False,
        respond_async: bool = False,
        options: RequestOptions | None = None,
    ) -> str | bytes:
        """
        Populate a stored template with `property_bag`.

        Returns, in order of precedence:
        - the materialization id, when `get_materialization_id` is set
        - the raw Location header, when the service accepted the job (202)
        - the materialized body otherwise (bytes if the client is configured for binary)
        """
        action = "Unable to materialize template"
        template_id = self._require_id(template_id)
        url = f"{self._template_url(template_id)}/materializations"
        with self._traced("materialize", url, "POST", Template=template_id) as segment:
            headers = self._crawl_headers(options)
            headers[conf.HEADER_CONTENT_TYPE] = "application/json"
            if respond_async:
                headers[conf.HEADER_PREFER] = conf.PREFER_RESPOND_ASYNC

            r = self._send("POST", url, action=action, segment=segment, headers=headers, json_body=property_bag)

            location = r.headers.get(conf.HEADER_LOCATION)
            if get_materialization_id:
                if not location:
                    raise StereotypeHTTPError(
                        f"{action}: response has no Location header", status=r.status_code, method="POST", url=url
                    )
                return urlsplit(location).path[conf.MATERIALIZATION_LOCATION_PREFIX_LEN :]
            if r.status_code == 202:
                return location or ""
            return self._body(r)

    def materialize_by_url(
        self,
        url: str,
        property_bag: Any,
        *,
        get_materialization_id: bool = False,
        respond_async: bool = False,
        options: RequestOptions | None = None,
    ) -> str | bytes:
        return self.materialize(
            self.template_id_from_url(url),
            property_bag,
            get_materialization_id=get_materialization_id,
            respond_async=respond_async,
            options=options,
        )

    def materialize_direct(
        self,
        template_body: str | bytes,
        content_type: str,
        property_bag: Any,
        options: RequestOptions | None = None,
    ) -> DirectMaterialization:
        """Materialize an inline template without storing it first."""
        url = self.materializations_url
        with self._traced("materializeDirect", url, "POST") as segment:
            raw = template_body.encode("utf-8") if isinstance(template_body, str) else bytes(template_body)
            payload = {
                "template": {
                    "body": base64.b64encode(raw).decode("ascii"),
                    "contentType": content_type,
                },
                "templatePayload": property_bag,
            }
            headers = self._crawl_headers(options)
            headers[conf.HEADER_CONTENT_TYPE] = "application/json"
            r = self._send(
                "POST",
                url,
                action="Unable to materialize template",
                segment=segment,
                headers=headers,
                json_body=payload,
            )
            return DirectMaterialization(status=r.status_code, result=self._body(r))

    def get_materialization(self, materialization_id: str, skip_cache: bool = False) -> str | bytes:
        materialization_id = _check_segment(str(materialization_id or ""))
        if not materialization_id.strip():
            raise InvalidIdentifierError(materialization_id)
        url = f"{self.materializations_url}/{materialization_id}"
        with self._traced(
            "getMaterialization", url, "GET", Template_Materialization=materialization_id
        ) as segment:
            r = self._send(
                "GET",
                url,
                action="Unable to get materialization",
                segment=segment,
                params=_cache_buster(skip_cache),
            )
            return self._body(r)

    def expand(self, property_bag: Any, options: RequestOptions | None = None) -> str:
        """
        Resolve the links of `property_bag` without materializing a template.

        A 400 caused by an upstream socket timeout is retried up to `num_retries` times.
        """
        url = f"{self.config.base_url}{conf.EXPAND_PATH}"
        with self._traced("expand", url, "POST") as segment:
            return self._expand(url, property_bag, options, segment, self.config.num_retries)

    def _expand(
        self,
        url: str,
        property_bag: Any,
        options: RequestOptions | None,
        segment: Segment,
        retries_left: int,
    ) -> str:
        headers = self._crawl_headers(options)
        headers[conf.HEADER_CONTENT_TYPE] = "application/json"
        try:
            r = self._send(
                "POST",
                url,
                action="Unable to expand propertyBag",
                segment=segment,
                headers=headers,
                json_body=property_bag,
            )
        except StereotypeHTTPError as e:
            if e.status == 400 and retries_left > 0 and _is_socket_timeout(e.body):
                logger.warning("Expand timed out resolving links, retrying (%d left)", retries_left)
                return self._expand(url, property_bag, options, segment, retries_left - 1)
            raise
        return r.text

    # Service

    def livecheck(self) -> bool:
        url = f"{self.config.base_url}{conf.LIVECHECK_PATH}"
        with self._traced("livecheck", url, "GET") as segment:
            r = self._send("GET", url, action="Unable to get livecheck data", segment=segment)
            return r.status_code == 200

    def get_swagger(self, skip_cache: bool = False) -> dict[str, Any]:
        action = "Unable to get swagger"
        url = f"{self.config.base_url}{conf.SWAGGER_PATH}"
        with self._traced("getSwagger", url, "GET") as segment:
            r = self._send("GET", url, action=action, segment=segment, params=_cache_buster(skip_cache))
            data = self._json(r, action)
            if not isinstance(data, dict):
                raise StereotypeHTTPError(f"{action}: expected a JSON object", status=r.status_code, url=url)
            return data
