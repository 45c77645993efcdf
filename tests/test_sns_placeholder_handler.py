"""
Tests for the SNS placeholder consumer.
"""

import json
import logging
import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

import sns_placeholder_handler


def _sns_event(message):
    return {'Records': [{'EventSource': 'aws:sns', 'Sns': {'MessageId': 'sns-1', 'Message': message}}]}


class TestLambdaHandler:
    """Test the placeholder consumer never raises on well-formed events."""

    def test_dispatch_notification(self, sns_event, mock_context, caplog):
        with caplog.at_level(logging.INFO):
            result = sns_placeholder_handler.lambda_handler(sns_event, mock_context)

        assert result == {'processed': 1}
        assert 'requestId=r1' in caplog.text
        assert 'xMessageId=abc123' in caplog.text

    def test_error_notification(self, mock_context):
        message = json.dumps({
            'sourceLambda': 'SendEmailFunction',
            'message': {'name': 'MailSendError', 'code': 401}
        })

        assert sns_placeholder_handler.lambda_handler(_sns_event(message), mock_context) == {'processed': 1}

    def test_non_json_message(self, mock_context, caplog):
        with caplog.at_level(logging.WARNING):
            result = sns_placeholder_handler.lambda_handler(_sns_event('plain text'), mock_context)

        assert result == {'processed': 1}
        assert 'not a notification envelope' in caplog.text

    def test_message_without_source(self, mock_context):
        result = sns_placeholder_handler.lambda_handler(_sns_event(json.dumps({'hello': 'world'})), mock_context)

        assert result == {'processed': 1}

    def test_missing_message(self, mock_context):
        event = {'Records': [{'Sns': {'MessageId': 'sns-1'}}]}

        assert sns_placeholder_handler.lambda_handler(event, mock_context) == {'processed': 1}

    def test_no_records(self, mock_context):
        assert sns_placeholder_handler.lambda_handler({}, mock_context) == {'processed': 0}


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
