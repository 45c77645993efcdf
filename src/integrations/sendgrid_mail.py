"""
SendGrid v3 Mail Send integration.

This module wraps the official SendGrid client behind a small interface used
by the dispatch pipeline:

Usage:
    from integrations.sendgrid_mail import SendGridMailer

    mailer = SendGridMailer(api_key=os.environ['SENDGRID_API_KEY'])
    results = mailer.send(send_request)
    results[0]['statusCode']             # 202
    results[0]['headers']['x-message-id']

Send requests are stored in the camelCase shape used by SendGrid's client
libraries (customArgs, sendAt, ...), including the shorthand fields those
libraries accept (to/cc/bcc, text/html, top-level dynamicTemplateData, string
from/replyTo). Shorthand is expanded into personalizations and content, then
keys are converted to the snake_case v3 wire format right before the call.
Keys of user-defined maps (custom args, headers, substitutions, template
data, sections) are left untouched.

API documentation: https://docs.sendgrid.com/api-reference/mail-send/mail-send
"""

import json
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Bcc, Cc, Content, Email, MimeType, Personalization, To

from config import ConfigurationError, mask_secret

logger = logging.getLogger(__name__)

# Maps whose keys are user data and must not be converted
PRESERVED_KEYS = frozenset([
    'customArgs',
    'custom_args',
    'headers',
    'substitutions',
    'dynamicTemplateData',
    'dynamic_template_data',
    'sections',
])

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


# ============================================================================
# Custom Exception Classes
# ============================================================================

class MailSendError(Exception):
    """
    Raised when the Mail Send API rejects a request.

    Attributes:
        status_code: HTTP status returned by SendGrid
        body: Decoded response body (parsed JSON when possible)
        headers: Response headers with lower-cased names
    """

    def __init__(self, message: str, status_code: Optional[int] = None,
                 body: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}

    @classmethod
    def from_http_error(cls, error: HTTPError) -> 'MailSendError':
        status_code = getattr(error, 'status_code', None)
        reason = getattr(error, 'reason', '') or ''
        return cls(
            message=f"SendGrid API error {status_code}: {reason}".strip(),
            status_code=status_code,
            body=_decode_body(getattr(error, 'body', None)),
            headers=_normalize_headers(getattr(error, 'headers', None))
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form archived to S3 and published to SNS."""
        return {
            'name': type(self).__name__,
            'code': self.status_code,
            'message': str(self),
            'response': {
                'headers': self.headers,
                'body': self.body
            }
        }


# ============================================================================
# Payload and Response Conversion
# ============================================================================

def _to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r'_\1', name).lower()


def _snake_keys(value: Any) -> Any:
    if isinstance(value, list):
        return [_snake_keys(item) for item in value]
    if not isinstance(value, dict):
        return value

    converted = {}
    for key, item in value.items():
        if key in PRESERVED_KEYS:
            converted[_to_snake(key)] = item
        else:
            converted[_to_snake(key)] = _snake_keys(item)
    return converted


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else [value]


def _address(value: Any, email_class=Email) -> Email:
    """Build an SDK address from 'a@x.com', 'Name <a@x.com>' or {'email', 'name'}."""
    if isinstance(value, dict):
        return email_class(email=value.get('email'), name=value.get('name'))
    return email_class(email=value)


def expand_shorthand(send_request: Dict[str, Any]) -> Dict[str, Any]:
    """
    Expand client-library shorthand into full v3 structures.

    - to/cc/bcc become a new personalization (carrying a top-level
      dynamicTemplateData when present)
    - a top-level dynamicTemplateData without recipients is applied to each
      personalization that has none of its own
    - text/html become content entries, text/plain first
    - string from/replyTo become address objects

    Requests already in full form are returned unchanged (as a copy).
    """
    request = dict(send_request)
    template_data = request.pop('dynamicTemplateData', None)
    personalizations = list(request.get('personalizations') or [])

    recipients = {name: request.pop(name) for name in ('to', 'cc', 'bcc') if name in request}
    if recipients:
        personalization = Personalization()
        for value in _as_list(recipients.get('to', [])):
            personalization.add_to(_address(value, To))
        for value in _as_list(recipients.get('cc', [])):
            personalization.add_cc(_address(value, Cc))
        for value in _as_list(recipients.get('bcc', [])):
            personalization.add_bcc(_address(value, Bcc))
        expanded = personalization.get()
        if template_data is not None:
            expanded['dynamic_template_data'] = template_data
        personalizations.append(expanded)
    elif template_data is not None:
        personalizations = [
            p if ('dynamicTemplateData' in p or 'dynamic_template_data' in p)
            else dict(p, dynamicTemplateData=template_data)
            for p in personalizations
        ]

    if personalizations:
        request['personalizations'] = personalizations

    shorthand_content = []
    if 'text' in request:
        shorthand_content.append(Content(MimeType.text, request.pop('text')).get())
    if 'html' in request:
        shorthand_content.append(Content(MimeType.html, request.pop('html')).get())
    if shorthand_content:
        request['content'] = shorthand_content + list(request.get('content') or [])

    for name in ('from', 'replyTo'):
        if isinstance(request.get(name), str):
            request[name] = _address(request[name]).get()

    return request


def to_api_payload(send_request: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a camelCase send request to the v3 snake_case wire format.

    Example:
        >>> to_api_payload({'customArgs': {'requestId': 'r1'}, 'sendAt': 1})
        {'custom_args': {'requestId': 'r1'}, 'send_at': 1}
        >>> to_api_payload({'to': 'a@example.com', 'text': 'hi'})
        {'personalizations': [{'to': [{'email': 'a@example.com'}]}], 'content': [{'type': 'text/plain', 'value': 'hi'}]}
    """
    return _snake_keys(expand_shorthand(send_request))


def _decode_body(body: Any) -> Any:
    if body is None:
        return None
    if isinstance(body, bytes):
        body = body.decode('utf-8', errors='replace')
    if isinstance(body, str):
        if not body:
            return ''
        try:
            return json.loads(body)
        except ValueError:
            return body
    return body


def _normalize_headers(headers: Any) -> Dict[str, str]:
    if not headers:
        return {}
    items = headers.items() if hasattr(headers, 'items') else headers
    return {str(name).lower(): str(value) for name, value in items}


# ============================================================================
# Mailer
# ============================================================================

class SendGridMailer:
    """
    Sends mail through the SendGrid v3 API with a single account credential.

    The SDK client is created on first use and reused across invocations.
    Selecting among several API keys (per tenant or per apiKeyId custom arg)
    would hook in here.
    """

    def __init__(self, api_key: Optional[str],
                 client_factory: Callable[..., Any] = SendGridAPIClient):
        self._api_key = api_key
        self._client_factory = client_factory
        self._client = None

    def _get_client(self):
        if not self._api_key:
            raise ConfigurationError(
                "SENDGRID_API_KEY environment variable is required but not set"
            )
        if self._client is None:
            self._client = self._client_factory(api_key=self._api_key)
            logger.info(f"SendGrid client initialized: api_key={mask_secret(self._api_key)}")
        return self._client

    def send(self, send_request: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Send one request to the Mail Send endpoint.

        Args:
            send_request: Send request in camelCase form

        Returns:
            Per-recipient results: [{'statusCode', 'headers', 'body'}]

        Raises:
            ConfigurationError: If no API key is configured
            MailSendError: If SendGrid returns an HTTP error
        """
        client = self._get_client()
        payload = to_api_payload(send_request)

        start_time = time.time()
        try:
            response = client.send(payload)
        except HTTPError as e:
            error = MailSendError.from_http_error(e)
            logger.error(f"SendGrid rejected request: status={error.status_code}, body={error.body}")
            raise error from e

        elapsed = time.time() - start_time
        logger.info(f"SendGrid call completed: status={response.status_code}, elapsed={elapsed:.3f}s")

        return [{
            'statusCode': response.status_code,
            'headers': _normalize_headers(response.headers),
            'body': _decode_body(response.body)
        }]
