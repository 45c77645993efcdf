"""
Email dispatch pipeline - core business logic.

This module handles one S3 object-created notification end to end:
1. Resolve the bucket/key of the send request
2. Fetch and parse the send request from S3
3. Stamp customArgs.apiCallTimestamp and call the Mail Send API
4. Archive the provider response under responses/<statusCode>/
5. Publish a notification envelope to SNS

Provider and processing errors are archived under responses/error/ and
published; they never propagate. Publish failures do propagate so the
invocation is reported as failed.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from .models import (
    DispatchOutcome,
    DispatchResult,
    NotificationEnvelope,
    ObjectReference,
    classify_response,
)
from config import DEFAULT_SOURCE_LAMBDA
from services import s3 as s3_service
from services import sns as sns_service
from services.sns import PublishError
from integrations.sendgrid_mail import MailSendError

logger = logging.getLogger(__name__)

PARSE_FAILURE_MESSAGE = "In send-email Lambda and JSON Parse Failed"


def error_to_dict(error: Exception) -> Dict[str, Any]:
    """
    Convert an exception to the JSON-safe form that is archived and published.

    Args:
        error: Exception raised while dispatching

    Returns:
        Dict with name and message (plus code/response for API errors)
    """
    if isinstance(error, MailSendError):
        return error.to_dict()
    return {
        'name': type(error).__name__,
        'message': str(error)
    }


class EmailDispatcher:
    """
    Dispatches send requests stored in S3 through the mail provider.

    Collaborators are injected so they are built once per process and reused
    across invocations; defaults are the S3 and SNS service modules.
    """

    def __init__(
        self,
        mailer,
        topic_arn: Optional[str],
        source_lambda: str = DEFAULT_SOURCE_LAMBDA,
        store=s3_service,
        publisher=sns_service,
        clock: Callable[[], float] = time.time
    ):
        self._mailer = mailer
        self._topic_arn = topic_arn
        self._source_lambda = source_lambda
        self._store = store
        self._publisher = publisher
        self._clock = clock

    def dispatch(self, event: Dict[str, Any]) -> DispatchResult:
        """
        Process one S3 object-created event.

        Args:
            event: S3 event notification with a single record

        Returns:
            DispatchResult describing the branch taken

        Raises:
            ValueError: If the event carries no S3 object reference
            PublishError: If the notification could not be published
        """
        reference = self._parse_event(event)
        file_name = reference.file_name
        logger.info(
            f"Dispatching request: s3://{reference.bucket}/{reference.key} "
            f"(file_name={file_name})"
        )

        send_request = self._store.fetch_json(reference.bucket, reference.key)

        if not isinstance(send_request, dict):
            logger.error(f"Send request could not be read as a JSON object: {reference.key}")
            envelope = NotificationEnvelope(
                source_lambda=self._source_lambda,
                message={'message': PARSE_FAILURE_MESSAGE, 'event': event}
            )
            self._publish(envelope)
            return DispatchResult(
                outcome=DispatchOutcome.PARSE_FAILURE,
                file_name=file_name,
                envelope=envelope,
                error_message=PARSE_FAILURE_MESSAGE
            )

        try:
            return self._send_and_archive(reference, send_request)

        except PublishError:
            raise

        except Exception as e:
            logger.error(f"Error calling SendGrid API for {reference.key}: {e}", exc_info=True)
            return self._archive_error(reference, e)

    def _parse_event(self, event: Dict[str, Any]) -> ObjectReference:
        records = event.get('Records') or []
        if not records:
            raise ValueError("S3 event contains no records")
        if len(records) > 1:
            logger.warning(f"S3 event contains {len(records)} records, only the first is dispatched")

        try:
            return ObjectReference.from_s3_record(records[0])
        except (KeyError, TypeError) as e:
            raise ValueError(f"S3 event record missing bucket or key: {e}")

    def _stamp_timestamp(self, send_request: Dict[str, Any]) -> None:
        """Set customArgs.apiCallTimestamp (unix seconds) right before the call."""
        if send_request.get('customArgs') is None:
            send_request['customArgs'] = {}
        send_request['customArgs']['apiCallTimestamp'] = int(self._clock())

    def _send_and_archive(
        self,
        reference: ObjectReference,
        send_request: Dict[str, Any]
    ) -> DispatchResult:
        self._stamp_timestamp(send_request)

        raw_response = self._mailer.send(send_request)
        logger.info(f"Provider response: {raw_response}")

        response = classify_response(raw_response)
        status_code = response.status_code
        x_message_id = response.message_id
        if x_message_id:
            logger.info(f"x-message-id: {x_message_id}")

        response_key = reference.response_key(status_code, x_message_id)
        logger.info(f"Response key: {response_key}")

        store_result = self._store.put_json(response_key, reference.bucket, response.raw)
        if not store_result.success:
            logger.error(f"Provider response was not archived: {store_result}")

        envelope = NotificationEnvelope(
            source_lambda=self._source_lambda,
            message=response.raw,
            request_id=send_request['customArgs'].get('requestId'),
            x_message_id=x_message_id
        )
        self._publish(envelope)

        return DispatchResult(
            outcome=DispatchOutcome.DISPATCHED,
            file_name=reference.file_name,
            response_key=response_key,
            status_code=status_code,
            x_message_id=x_message_id,
            store_result=store_result,
            envelope=envelope
        )

    def _archive_error(self, reference: ObjectReference, error: Exception) -> DispatchResult:
        error_body = error_to_dict(error)
        error_key = reference.error_key

        store_result = self._store.put_json(error_key, reference.bucket, error_body)
        if not store_result.success:
            logger.error(f"Error object was not archived: {store_result}")

        envelope = NotificationEnvelope(
            source_lambda=self._source_lambda,
            message=error_body
        )
        self._publish(envelope)

        return DispatchResult(
            outcome=DispatchOutcome.PROVIDER_ERROR,
            file_name=reference.file_name,
            response_key=error_key,
            store_result=store_result,
            envelope=envelope,
            error_message=str(error)
        )

    def _publish(self, envelope: NotificationEnvelope) -> None:
        self._publisher.publish(self._topic_arn, envelope.to_dict())
