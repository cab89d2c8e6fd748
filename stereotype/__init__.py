"""
stereotype package

Client library for the Stereotype template materialization service.

Key responsibilities are split across modules:
- `conf.py`: endpoints, defaults, supported content types and header names
- `content_types.py`: content-type parsing and validation
- `options.py`: immutable per-call header options (relation filters, curies, ...)
- `config.py`: client configuration from code, YAML files or the environment
- `tracing.py`: pluggable tracing with a no-op default
- `client.py`: isolated Stereotype REST API interactions
- `cli.py`: command-line entrypoint for smoke-testing a deployment
"""

from __future__ import annotations

from stereotype.client import (
    DirectMaterialization,
    StereotypeClient,
    Template,
    TemplateSummary,
    TemplateWriteResult,
)
from stereotype.config import ClientConfig, load_config
from stereotype.content_types import is_supported_content_type, parse_content_type
from stereotype.errors import (
    ConfigError,
    InvalidIdentifierError,
    InvalidTemplateUrlError,
    StereotypeError,
    StereotypeHTTPError,
    StereotypeValidationError,
    TemplateNotFoundError,
    UnsupportedContentTypeError,
)
from stereotype.options import RequestOptions
from stereotype.tracing import LoggingTracer, NullTracer

__all__ = [
    "__version__",
    "ClientConfig",
    "ConfigError",
    "InvalidIdentifierError",
    "DirectMaterialization",
    "InvalidTemplateUrlError",
    "LoggingTracer",
    "NullTracer",
    "RequestOptions",
    "StereotypeClient",
    "StereotypeError",
    "StereotypeHTTPError",
    "StereotypeValidationError",
    "Template",
    "TemplateNotFoundError",
    "TemplateSummary",
    "TemplateWriteResult",
    "UnsupportedContentTypeError",
    "is_supported_content_type",
    "load_config",
    "parse_content_type",
]

__version__ = "0.1.0"
