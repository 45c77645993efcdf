"""
Environment configuration for the email dispatch Lambdas.

Values are read once per process (at module import of the handlers) and are
read-only afterwards.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'us-east-1'
DEFAULT_SOURCE_LAMBDA = 'SendEmailFunction'


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class DispatchConfig:
    """
    Process-scoped settings for the dispatch pipeline.

    Attributes:
        sendgrid_api_key: Credential of the account that sends mail
        topic_arn: SNS topic where notifications are published
        region: Region the S3 and SNS clients bind to
        source_lambda: Value stamped as sourceLambda in every envelope
        log_level: Logging level name
    """
    sendgrid_api_key: Optional[str]
    topic_arn: Optional[str]
    region: str
    source_lambda: str = DEFAULT_SOURCE_LAMBDA
    log_level: str = 'INFO'


def read_region() -> str:
    for name in ('REGION', 'AWS_REGION', 'AWS_DEFAULT_REGION'):
        value = os.environ.get(name)
        if value:
            return value
    return DEFAULT_REGION


def mask_secret(value: Optional[str]) -> str:
    """Mask a credential for logging, keeping only a short prefix and suffix."""
    if not value:
        return '<unset>'
    if len(value) > 12:
        return f"{value[:8]}...{value[-4:]}"
    return '***'


def load_config() -> DispatchConfig:
    """
    Build DispatchConfig from environment variables.

    Returns:
        DispatchConfig: Settings for this process

    Example:
        >>> os.environ['SNS_TOPIC_ARN'] = 'arn:aws:sns:us-east-1:123456789012:email-events'
        >>> load_config().topic_arn
        'arn:aws:sns:us-east-1:123456789012:email-events'
    """
    config = DispatchConfig(
        sendgrid_api_key=os.environ.get('SENDGRID_API_KEY') or None,
        topic_arn=os.environ.get('SNS_TOPIC_ARN') or os.environ.get('SNStopic') or None,
        region=read_region(),
        source_lambda=os.environ.get('SOURCE_LAMBDA_NAME', DEFAULT_SOURCE_LAMBDA),
        log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    )

    logger.info(
        f"Configuration loaded: region={config.region}, "
        f"topic_arn={config.topic_arn or '<unset>'}, "
        f"api_key={mask_secret(config.sendgrid_api_key)}"
    )
    return config
