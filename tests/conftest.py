"""
Pytest configuration and fixtures for all tests.
"""

import json
import os
import sys
from unittest.mock import Mock

import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('REGION', 'us-east-1')
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')
os.environ.setdefault('SENDGRID_API_KEY', 'SG.test-api-key-0123456789')
os.environ.setdefault('SNS_TOPIC_ARN', 'arn:aws:sns:us-east-1:123456789012:email-events')
os.environ.setdefault('LOG_LEVEL', 'INFO')

EVENTS_DIR = os.path.join(os.path.dirname(__file__), 'events')


def load_event(name):
    with open(os.path.join(EVENTS_DIR, name)) as f:
        return json.load(f)


@pytest.fixture
def s3_event():
    """S3 ObjectCreated event for requests/r1.json."""
    return load_event('s3-put-event.json')


@pytest.fixture
def send_request():
    """Send request document as stored under requests/."""
    return load_event('send-request.json')


@pytest.fixture
def sns_event():
    """SNS event carrying a published notification envelope."""
    return load_event('sns-event.json')


@pytest.fixture
def mock_context():
    """Mock Lambda context."""
    context = Mock()
    context.aws_request_id = "test-request-id"
    context.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:SendEmailFunction"
    context.function_name = "SendEmailFunction"
    return context
