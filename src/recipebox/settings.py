"""Environment-backed configuration accessors.

Values are read on every call so tests can patch ``os.environ``.
"""

import os

DEFAULT_ELASTICSEARCH_URL = "http://localhost:9200"
DEFAULT_INDEX_PREFIX = "recipebox-"


def get_api_key() -> str | None:
    return os.environ.get("API_KEY")


def get_store_backend() -> str:
    """Either ``elasticsearch`` (default) or ``memory``."""
    return os.environ.get("STORE_BACKEND", "elasticsearch").strip().lower()


def get_elasticsearch_url() -> str:
    return os.environ.get("ELASTICSEARCH_URL", DEFAULT_ELASTICSEARCH_URL)


def get_elasticsearch_api_key() -> str | None:
    return os.environ.get("ELASTICSEARCH_API_KEY") or None


def get_index_prefix() -> str:
    return os.environ.get("INDEX_PREFIX", DEFAULT_INDEX_PREFIX)


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
