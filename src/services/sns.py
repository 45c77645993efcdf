"""
SNS publishing for dispatch notifications.

Publishing is fire-and-forget: the MessageId returned by SNS is logged but
nothing else is inspected, and there is no retry beyond the client's own.
"""

import json
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import read_region

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """Raised when a notification could not be published."""
    pass


sns_config = Config(
    retries={
        'max_attempts': 3,
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

# Module-level client (reused across invocations)
sns_client = boto3.client('sns', region_name=read_region(), config=sns_config)


def publish(topic_arn: Optional[str], message: Any) -> Optional[str]:
    """
    Serialize a message to JSON and publish it to an SNS topic.

    Args:
        topic_arn: Target topic ARN
        message: JSON-serializable message

    Returns:
        The SNS MessageId, if SNS returned one

    Raises:
        PublishError: If the topic is not set or SNS rejects the publish
    """
    if not topic_arn:
        raise PublishError("Cannot publish notification: SNS topic ARN is not set")

    body = json.dumps(message, default=str)

    logger.info(f"Publishing message to SNS topic {topic_arn}: {body[:500]}")

    try:
        response = sns_client.publish(TopicArn=topic_arn, Message=body)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))
        logger.error(
            f"Failed to publish to SNS: topic={topic_arn}, "
            f"error_code={error_code}, error_message={error_message}"
        )
        raise PublishError(f"SNS publish failed ({error_code}): {error_message}") from e
    except BotoCoreError as e:
        logger.error(f"Failed to publish to SNS: topic={topic_arn}, error={e}")
        raise PublishError(f"SNS publish failed: {e}") from e

    message_id = response.get('MessageId')
    logger.info(f"Published SNS message: message_id={message_id}")
    return message_id
