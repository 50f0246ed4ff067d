"""boto3 client construction for the image catalog and parameter store."""

from __future__ import annotations

from typing import Any, Optional

import boto3
from botocore.config import Config

from . import config as ap_config
from .images import Provider
from .monitoring import start_monitoring_server


def client_config() -> Config:
    """botocore Config carrying timeouts and retry attempts from settings.

    Retries happen here, in the transport, never inside the resolvers.
    """
    return Config(
        connect_timeout=ap_config.aws_connect_timeout(),
        read_timeout=ap_config.aws_read_timeout(),
        retries={"max_attempts": ap_config.aws_max_attempts(), "mode": "standard"},
    )


def ec2_client(session: Optional[boto3.session.Session] = None) -> Any:
    session = session or boto3.session.Session()
    return session.client("ec2", region_name=ap_config.aws_region(), config=client_config())


def ssm_client(session: Optional[boto3.session.Session] = None) -> Any:
    session = session or boto3.session.Session()
    return session.client("ssm", region_name=ap_config.aws_region(), config=client_config())


def build_provider(
    version_api: Any,
    session: Optional[boto3.session.Session] = None,
) -> Provider:
    """Build a Provider wired to real AWS clients.

    When monitoring is enabled in config, a status server is started over
    the provider's resolutions.
    """
    provider = Provider(ec2_client(session), ssm_client(session), version_api)
    if ap_config.monitoring_enabled():
        host, port = ap_config.monitoring_bind().rsplit(":", 1)
        start_monitoring_server(
            host,
            int(port),
            provider=provider,
            history_ttl=ap_config.monitoring_history_ttl(),
        )
    return provider
