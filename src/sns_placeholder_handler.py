"""
AWS Lambda handler consuming dispatch notifications from SNS.

Placeholder consumer: logs every SNS message and the notification envelope it
carries. Persisting envelopes or alerting on failed sends would go here.
Never raises for a well-formed SNS event.
"""

import json
import logging
import os
from typing import Dict, Any

from domain.models import NotificationEnvelope

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO').upper())

if not logger.handlers:
    console_handler = logging.StreamHandler()
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)


def _parse_envelope(sns_message: Any) -> NotificationEnvelope:
    if isinstance(sns_message, str):
        sns_message = json.loads(sns_message)
    return NotificationEnvelope.from_dict(sns_message)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Log SNS notifications published by the send-email function.

    Args:
        event: SNS event with one or more records
        context: Lambda context

    Returns:
        Dict with the number of records seen
    """
    records = event.get('Records') or []
    if not records:
        logger.warning("SNS event contains no records")

    for record in records:
        sns = record.get('Sns', {})
        logger.info(f"sns object is => {json.dumps(sns, default=str)}")

        try:
            envelope = _parse_envelope(sns.get('Message'))
        except (TypeError, ValueError) as e:
            logger.warning(f"SNS message {sns.get('MessageId')} is not a notification envelope: {e}")
            continue

        logger.info(
            f"Notification from {envelope.source_lambda}: "
            f"requestId={envelope.request_id}, xMessageId={envelope.x_message_id}"
        )

    return {'processed': len(records)}
