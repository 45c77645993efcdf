"""
Data models for the email dispatch domain.

These type-safe data structures define clear contracts between components.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Dict, Any, Union
from urllib.parse import unquote_plus

REQUESTS_PREFIX = 'requests/'
RESPONSES_PREFIX = 'responses'
JSON_SUFFIX = '.json'
ERROR_STATUS = 'error'
NO_STATUS = 'none'
ACCEPTED_STATUS_CODE = 202
MESSAGE_ID_HEADER = 'x-message-id'


@dataclass(frozen=True)
class ObjectReference:
    """
    Location of a stored JSON document.

    Attributes:
        bucket: S3 bucket name
        key: S3 object key (already URL-decoded)
    """
    bucket: str
    key: str

    @classmethod
    def from_s3_record(cls, record: Dict[str, Any]) -> 'ObjectReference':
        """
        Build a reference from an S3 event notification record.

        S3 delivers object keys URL-encoded (spaces as '+'), so the key is
        decoded before use.

        Raises:
            KeyError: If the record has no s3.bucket.name or s3.object.key
        """
        s3_info = record['s3']
        return cls(
            bucket=s3_info['bucket']['name'],
            key=unquote_plus(s3_info['object']['key'])
        )

    @property
    def file_name(self) -> str:
        """
        Logical request name used to build response keys.

        'requests/r1.json' -> 'r1'. Keys outside that shape are passed
        through with whichever part matched stripped.
        """
        name = self.key
        if name.startswith(REQUESTS_PREFIX):
            name = name[len(REQUESTS_PREFIX):]
        if name.endswith(JSON_SUFFIX):
            name = name[:-len(JSON_SUFFIX)]
        return name

    def response_key(self, status_code: str, message_id: Optional[str] = None) -> str:
        """
        Key of the archived provider response.

        Examples:
            responses/202/r1__abc123.json (accepted, message id known)
            responses/400/r1.json
        """
        suffix = f"__{message_id}" if message_id else ''
        return f"{RESPONSES_PREFIX}/{status_code}/{self.file_name}{suffix}{JSON_SUFFIX}"

    @property
    def error_key(self) -> str:
        return self.response_key(ERROR_STATUS)


@dataclass
class PerRecipientResults:
    """
    Provider response as a list of per-recipient results.

    Each result looks like {'statusCode': 202, 'headers': {'x-message-id': ...}}.
    Only the first result drives classification.
    """
    results: List[Any]

    @property
    def _first(self) -> Dict[str, Any]:
        if self.results and isinstance(self.results[0], dict):
            return self.results[0]
        return {}

    @property
    def status_code(self) -> str:
        code = self._first.get('statusCode')
        return NO_STATUS if code is None else str(code)

    @property
    def message_id(self) -> Optional[str]:
        """Provider message id, only for an accepted (202) first result."""
        first = self._first
        if first.get('statusCode') != ACCEPTED_STATUS_CODE:
            return None
        headers = first.get('headers') or {}
        message_id = headers.get(MESSAGE_ID_HEADER)
        if message_id is None or message_id == '':
            return None
        return str(message_id)

    @property
    def raw(self) -> List[Any]:
        return self.results


@dataclass
class SingleError:
    """Provider response shaped as a single error object carrying a code."""
    code: Any
    body: Dict[str, Any]

    @property
    def status_code(self) -> str:
        return str(self.code)

    @property
    def message_id(self) -> Optional[str]:
        return None

    @property
    def raw(self) -> Dict[str, Any]:
        return self.body


@dataclass
class UnrecognizedResponse:
    """Provider response matching neither known shape."""
    body: Any

    @property
    def status_code(self) -> str:
        return NO_STATUS

    @property
    def message_id(self) -> Optional[str]:
        return None

    @property
    def raw(self) -> Any:
        return self.body


DispatchResponse = Union[PerRecipientResults, SingleError, UnrecognizedResponse]


def classify_response(raw: Any) -> DispatchResponse:
    """
    Resolve a raw provider response into one of the known shapes.

    Args:
        raw: Value returned by the mail client

    Returns:
        PerRecipientResults for a list, SingleError for an object with a
        'code' field, UnrecognizedResponse otherwise
    """
    if isinstance(raw, (list, tuple)):
        return PerRecipientResults(results=raw if isinstance(raw, list) else list(raw))
    if isinstance(raw, dict) and raw.get('code') is not None:
        return SingleError(code=raw['code'], body=raw)
    return UnrecognizedResponse(body=raw)


@dataclass
class NotificationEnvelope:
    """
    Uniform wrapper published after every dispatch attempt.

    Attributes:
        source_lambda: Name of the function that produced the notification
        message: Provider response, raw error, or parse-failure details
        request_id: Correlation id from customArgs.requestId (if present)
        x_message_id: Provider message id (if captured)
    """
    source_lambda: str
    message: Any
    request_id: Optional[str] = None
    x_message_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire format; absent optional fields are omitted."""
        result = {'sourceLambda': self.source_lambda}
        if self.request_id is not None:
            result['requestId'] = self.request_id
        if self.x_message_id is not None:
            result['xMessageId'] = self.x_message_id
        result['message'] = self.message
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationEnvelope':
        """
        Parse the wire format.

        Raises:
            ValueError: If data is not an object or lacks sourceLambda
        """
        if not isinstance(data, dict) or 'sourceLambda' not in data:
            raise ValueError("Notification envelope missing 'sourceLambda' field")
        return cls(
            source_lambda=data['sourceLambda'],
            message=data.get('message'),
            request_id=data.get('requestId'),
            x_message_id=data.get('xMessageId')
        )


@dataclass
class StoreResult:
    """
    Result of a JSON write to S3.

    Writes are best-effort: callers inspect this instead of catching.
    """
    success: bool
    bucket: str
    key: str
    error_message: Optional[str] = None

    def __repr__(self) -> str:
        if self.success:
            return f"StoreResult(success=True, key={self.key})"
        return f"StoreResult(success=False, key={self.key}, error={self.error_message})"


class DispatchOutcome(str, Enum):
    """Terminal state of one dispatch invocation."""
    PARSE_FAILURE = 'parse_failure'
    DISPATCHED = 'dispatched'
    PROVIDER_ERROR = 'provider_error'


@dataclass
class DispatchResult:
    """
    Result of dispatching one request object.

    Attributes:
        outcome: Which branch the invocation ended in
        file_name: Logical request name derived from the object key
        response_key: Key the response (or error) was written to, if any
        status_code: Classified provider status code (DISPATCHED only)
        x_message_id: Captured provider message id, if any
        store_result: Outcome of the response/error write, if attempted
        envelope: Notification that was published
        error_message: Error description (PROVIDER_ERROR only)
    """
    outcome: DispatchOutcome
    file_name: str
    response_key: Optional[str] = None
    status_code: Optional[str] = None
    x_message_id: Optional[str] = None
    store_result: Optional[StoreResult] = None
    envelope: Optional[NotificationEnvelope] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == DispatchOutcome.DISPATCHED

    def summary(self) -> Dict[str, Any]:
        """JSON-safe summary returned by the handler."""
        return {
            'outcome': self.outcome.value,
            'fileName': self.file_name,
            'responseKey': self.response_key,
            'statusCode': self.status_code,
            'xMessageId': self.x_message_id,
            'stored': self.store_result.success if self.store_result else False,
        }

    def __repr__(self) -> str:
        if self.success:
            return (
                f"DispatchResult(outcome={self.outcome.value}, "
                f"status={self.status_code}, key={self.response_key})"
            )
        return (
            f"DispatchResult(outcome={self.outcome.value}, "
            f"file={self.file_name}, error={self.error_message})"
        )
