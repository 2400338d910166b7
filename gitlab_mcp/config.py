"""Process configuration, resolved once at startup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from dotenv import load_dotenv

from gitlab_mcp.errors import ConfigurationError

SERVER_NAME = "gitlab-mcp-bridge"
DEFAULT_GITLAB_API_URL = "https://gitlab.com/api/v4"
GITLAB_API_PATH_SUFFIX = "/api/v4"
GITLAB_TOKEN_ENV_VAR = "GITLAB_PERSONAL_ACCESS_TOKEN"
GITLAB_API_URL_ENV_VAR = "GITLAB_API_URL"
LOG_LEVEL_ENV_VAR = "GITLAB_MCP_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable runtime configuration shared by every tool call."""

    token: str
    api_url: str
    log_level: str = DEFAULT_LOG_LEVEL


def normalize_gitlab_api_url(url: str | None) -> str:
    """Return a canonical GitLab API base URL ending in ``/api/v4``."""
    if not url:
        return DEFAULT_GITLAB_API_URL

    normalized_url = url[:-1] if url.endswith("/") else url
    if not normalized_url.endswith(GITLAB_API_PATH_SUFFIX):
        normalized_url = f"{normalized_url}{GITLAB_API_PATH_SUFFIX}"
    return normalized_url


def load_settings() -> Settings:
    """Read settings from the environment and fail fast if the token is missing."""
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    token = os.getenv(GITLAB_TOKEN_ENV_VAR)
    if not token:
        raise ConfigurationError(f"{GITLAB_TOKEN_ENV_VAR} environment variable is not set")

    return Settings(
        token=token,
        api_url=normalize_gitlab_api_url(os.getenv(GITLAB_API_URL_ENV_VAR)),
        log_level=os.getenv(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper(),
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Send log records to stderr; stdout carries the MCP stream."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def get_server_version() -> str:
    """Return the installed package version, or ``unknown`` when not installed."""
    try:
        return version(SERVER_NAME)
    except PackageNotFoundError:
        return "unknown"
