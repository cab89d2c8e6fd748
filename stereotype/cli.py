"""
cli.py

Responsibility: CLI entrypoint for poking a Stereotype deployment.

One subcommand per client operation (livecheck, swagger, templates CRUD,
materialize, expand). Results are written to stdout; JSON results are
pretty-printed. All REST interaction goes through `client.py`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from stereotype.client import StereotypeClient
from stereotype.config import ENV_TOKEN, ClientConfig, config_from_env
from stereotype.errors import StereotypeError
from stereotype.tracing import LoggingTracer

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class CLIError(RuntimeError):
    pass


def _emit(value: Any) -> None:
    if isinstance(value, bytes):
        sys.stdout.buffer.write(value)
        sys.stdout.flush()
    elif isinstance(value, str):
        print(value)
    else:
        print(json.dumps(value, indent=2, sort_keys=True))


def _read_text(path: str) -> str:
    p = Path(path)
    if not p.is_file():
        raise CLIError(f"File does not exist: {p}")
    try:
        return p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CLIError(f"Cannot read {p}: {e}") from e


def _read_json(path: str) -> Any:
    p = Path(path)
    text = _read_text(path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CLIError(f"Not valid JSON: {p}") from e


def _make_client(args: argparse.Namespace) -> StereotypeClient:
    tracer = LoggingTracer()
    if args.config:
        return StereotypeClient.from_config_file(args.config, access_token=args.token, tracer=tracer)

    loaded = config_from_env()
    token = args.token or loaded.token or ""
    if not token:
        raise CLIError(f"Access token is required (use --token or set {ENV_TOKEN})")
    cfg = loaded.client
    if args.base_url:
        cfg = ClientConfig(
            base_url=args.base_url,
            timeout_ms=cfg.timeout_ms,
            deadline_ms=cfg.deadline_ms,
            num_retries=cfg.num_retries,
            is_binary_response=cfg.is_binary_response,
        )
    return StereotypeClient(token, cfg, options=loaded.options, tracer=tracer)


def livecheck_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    alive = client.livecheck()
    _emit("ALIVE" if alive else "DEAD")
    return 0 if alive else 1


def swagger_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    _emit(client.get_swagger(skip_cache=args.skip_cache))
    return 0


def list_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    templates = client.list_templates(public=args.public, skip_cache=args.skip_cache)
    _emit([asdict(t) for t in templates])
    return 0


def get_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    if args.template.startswith(("http://", "https://")):
        template = client.get_template_by_url(args.template, skip_cache=args.skip_cache)
    else:
        template = client.get_template(args.template, skip_cache=args.skip_cache)
    _emit(asdict(template))
    return 0


def put_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    body = _read_text(args.body_path)
    result = client.put_template(
        args.template,
        body,
        args.content_type,
        is_public=args.public,
        name=args.name,
        description=args.description,
    )
    _emit(asdict(result))
    return 0


def delete_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    _emit(str(client.delete_template(args.template)))
    return 0


def materialize_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    bag = _read_json(args.property_bag)
    result = client.materialize(
        args.template,
        bag,
        get_materialization_id=args.id_only,
        respond_async=args.respond_async,
    )
    _emit(result)
    return 0


def get_materialization_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    _emit(client.get_materialization(args.materialization, skip_cache=args.skip_cache))
    return 0


def expand_cmd(client: StereotypeClient, args: argparse.Namespace) -> int:
    _emit(client.expand(_read_json(args.property_bag)))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="stereotype", description="Stereotype template service client")
    p.add_argument("--config", default=None, help="YAML config file (base_url, timeouts, token, options)")
    p.add_argument("--token", default=None, help=f"Access token (or set env {ENV_TOKEN})")
    p.add_argument("--base-url", default=None, help="Service root URL (overrides environment)")
    p.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: WARNING)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("livecheck", help="Check whether the service is alive")
    s.set_defaults(func=livecheck_cmd)

    s = sub.add_parser("swagger", help="Print the service descriptor")
    s.add_argument("--skip-cache", action="store_true", help="Defeat intermediary caches")
    s.set_defaults(func=swagger_cmd)

    s = sub.add_parser("list", help="List templates")
    s.add_argument("--public", action="store_true", help="List public templates")
    s.add_argument("--skip-cache", action="store_true", help="Defeat intermediary caches")
    s.set_defaults(func=list_cmd)

    s = sub.add_parser("get", help="Show a template (id or full URL)")
    s.add_argument("template", help="Template id or URL")
    s.add_argument("--skip-cache", action="store_true", help="Defeat intermediary caches")
    s.set_defaults(func=get_cmd)

    s = sub.add_parser("put", help="Create or replace a template")
    s.add_argument("template", help="Template id")
    s.add_argument("body_path", help="Path to the template body")
    s.add_argument("--content-type", required=True, help="e.g. text/mustache")
    s.add_argument("--public", action="store_true", help="Make the template public")
    s.add_argument("--name", default=None, help="Template name")
    s.add_argument("--description", default=None, help="Template description")
    s.set_defaults(func=put_cmd)

    s = sub.add_parser("delete", help="Delete a template")
    s.add_argument("template", help="Template id")
    s.set_defaults(func=delete_cmd)

    s = sub.add_parser("materialize", help="Materialize a template with a JSON property bag")
    s.add_argument("template", help="Template id")
    s.add_argument("property_bag", help="Path to a JSON file")
    s.add_argument("--id-only", action="store_true", help="Print the materialization id instead of the body")
    s.add_argument("--async", dest="respond_async", action="store_true", help="Ask for asynchronous materialization")
    s.set_defaults(func=materialize_cmd)

    s = sub.add_parser("get-materialization", help="Fetch an existing materialization")
    s.add_argument("materialization", help="Materialization id")
    s.add_argument("--skip-cache", action="store_true", help="Defeat intermediary caches")
    s.set_defaults(func=get_materialization_cmd)

    s = sub.add_parser("expand", help="Expand the links of a JSON property bag")
    s.add_argument("property_bag", help="Path to a JSON file")
    s.set_defaults(func=expand_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
    try:
        client = _make_client(args)
        with client:
            return int(args.func(client, args))
    except (CLIError, StereotypeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
