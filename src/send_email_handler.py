"""
AWS Lambda handler for sending email requests dropped into S3.

Triggered by an s3:ObjectCreated event for requests/*.json. Thin orchestration
layer that delegates to EmailDispatcher.
Policy: provider errors are archived and published, never raised. A failed
SNS publish fails the invocation.
"""

import json
import logging
from typing import Dict, Any

from config import load_config
from domain.email_dispatcher import EmailDispatcher
from integrations.sendgrid_mail import SendGridMailer

config = load_config()

# Configure logging
logger = logging.getLogger()
logger.setLevel(config.log_level)

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(config.log_level)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# Initialize dispatcher once at module level (reused across invocations)
email_dispatcher = EmailDispatcher(
    mailer=SendGridMailer(api_key=config.sendgrid_api_key),
    topic_arn=config.topic_arn,
    source_lambda=config.source_lambda
)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Dispatch the send request referenced by an S3 event.

    Args:
        event: S3 event notification
        context: Lambda context

    Returns:
        Dict with statusCode 200 and a JSON summary of the dispatch outcome
    """
    logger.info("=" * 70)
    logger.info("Send Email - Started")
    logger.info("=" * 70)
    logger.debug(f"Received event: {json.dumps(event, default=str)}")

    result = email_dispatcher.dispatch(event)

    if result.success:
        logger.info(f"✓ Dispatched {result.file_name}: {result!r}")
    else:
        logger.warning(f"⚠ Dispatch of {result.file_name} ended with {result.outcome.value}: {result!r}")

    return {
        'statusCode': 200,
        'body': json.dumps(result.summary())
    }
