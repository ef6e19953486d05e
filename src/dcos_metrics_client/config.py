"""Configuration and logging setup for the DC/OS Metrics Client."""

import json
import logging
import os
import pathlib

import pydantic
import structlog

from . import dcosapi

CONFIG_ENV_VAR = "DCOS_CLIENT_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Configuration for a DC/OS cluster client."""

    cluster_url: str = pydantic.Field(description="Base URL of the DC/OS cluster")
    service_account_id: str | None = pydantic.Field(
        None,
        description="Service account used to log in",
    )
    service_account_private_key: str | None = pydantic.Field(
        None,
        description="Path to the PEM private key of the service account",
    )
    token_file: str | None = pydantic.Field(
        None,
        description="Path to file containing a static auth token",
    )
    response_timeout: float = pydantic.Field(
        dcosapi.DEFAULT_RESPONSE_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    max_connections: int = pydantic.Field(
        dcosapi.DEFAULT_MAX_CONNECTIONS,
        description="Maximum number of concurrent requests",
        gt=0,
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")

    @pydantic.model_validator(mode="after")
    def check_credentials(self) -> "ClientConfig":
        has_account = self.service_account_id is not None or self.service_account_private_key is not None
        if has_account and (self.service_account_id is None or self.service_account_private_key is None):
            msg = "service_account_id and service_account_private_key must be set together"
            raise ValueError(msg)
        if has_account and self.token_file is not None:
            msg = "configure either a service account or a token_file, not both"
            raise ValueError(msg)
        return self


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> ClientConfig:
    """Load configuration from JSON file."""
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return ClientConfig(**data)


def create_client(config: ClientConfig, transport=None) -> dcosapi.ClusterClient:
    """Construct a cluster client and its credentials from validated config."""
    credentials: dcosapi.types.ServiceAccount | dcosapi.types.AuthToken | None = None
    if config.service_account_id is not None and config.service_account_private_key is not None:
        credentials = dcosapi.load_service_account(
            config.service_account_id,
            config.service_account_private_key,
        )
        auth = "service_account"
    elif config.token_file is not None:
        credentials = dcosapi.load_token_file(config.token_file)
        auth = "token_file"
    else:
        auth = "none"

    client = dcosapi.ClusterClient(
        base_url=config.cluster_url,
        credentials=credentials,
        response_timeout=config.response_timeout,
        max_connections=config.max_connections,
        transport=transport,
    )
    logger.info("Created cluster client", base_url=client.base_url, auth=auth)
    return client


def create_client_from_env(config_path: str | None = None) -> dcosapi.ClusterClient:
    """Create a client using a config path or environment default."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, "/config.json")
    config = load_config(resolved_path)
    configure_logging(config.log_level)
    return create_client(config)
