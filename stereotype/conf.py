"""
conf.py

Responsibility: Fixed constants shared by the Stereotype client.

Nothing in here talks to the network; `client.py` composes URLs and headers
from these values.
"""

from __future__ import annotations

BASE_URL = "https://stereotype.trdlnk.cimpress.io"
VERSION = "v1"

TEMPLATES_PATH = f"/{VERSION}/templates"
MATERIALIZATIONS_PATH = f"/{VERSION}/materializations"
EXPAND_PATH = f"/{VERSION}/expand"
SWAGGER_PATH = f"/{VERSION}/swagger.json"
LIVECHECK_PATH = "/livecheck"

# Location headers of materializations look like `/v1/materializations/<id>`.
MATERIALIZATION_LOCATION_PREFIX_LEN = len(MATERIALIZATIONS_PATH) + 1

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_DEADLINE_MS = 60000
DEFAULT_NUM_RETRIES = 3
DEFAULT_LINK_TIMEOUT_MS = 5000

BODY_TYPES = {
    "dust": "text/dust",
    "mustache": "text/mustache",
    "handlebars": "text/handlebars",
    "x-handlebars": "text/x-handlebars-template",
    "handlebars-json": "application/vnd.cimpress.handlebars+json",
    "edie": "text/edie",
    "edie-json": "application/vnd.cimpress.edie+json",
}

POSTPROCESSORS = frozenset({"mjml", "pdf"})

CURIE_SEPARATOR = ";"

# Statuses worth another attempt for idempotent requests.
RETRYABLE_STATUSES = frozenset({408, 413, 429, 500, 502, 503, 504, 521, 522, 524})

# Fragments of a 400 body from /expand meaning a link timed out upstream.
EXPAND_TIMEOUT_SIGNATURES = ("ESOCKETTIMEDOUT", "ETIMEDOUT")

HEADER_AUTHORIZATION = "Authorization"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_ACCEPT = "Accept"
HEADER_PREFER = "Prefer"
HEADER_LOCATION = "Location"
HEADER_TEMPLATE_PUBLIC = "x-cimpress-template-public"
HEADER_TEMPLATE_NAME = "x-cimpress-template-name"
HEADER_TEMPLATE_DESCRIPTION = "x-cimpress-template-description"
HEADER_REL_BLACKLIST = "x-cimpress-rel-blacklist"
HEADER_REL_WHITELIST = "x-cimpress-rel-whitelist"
HEADER_ACCEPT_PREFERENCE = "x-cimpress-accept-preference"
HEADER_REL_CURIES = "x-cimpress-rel-curies"
HEADER_MAX_DEPTH = "x-cimpress-max-depth"
HEADER_SOFT_ERRORS = "x-cimpress-crawler-soft-errors"
HEADER_LINK_TIMEOUT = "x-cimpress-link-timeout"

PREFER_RESPOND_ASYNC = "respond-async"
