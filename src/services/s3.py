"""
S3 operations for the email dispatch Lambdas.

Reads send requests as JSON and archives provider responses as JSON.
Neither operation raises for transport or parse errors: fetches return None
and writes return a StoreResult.
"""

import json
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import read_region
from domain.models import StoreResult

logger = logging.getLogger(__name__)

# Configure S3 client with timeouts to prevent infinite hangs
s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=60
)

# Initialize S3 client at module level (thread-safe, reused across invocations)
s3_client = boto3.client('s3', region_name=read_region(), config=s3_config)
logger.info("S3 client initialized with timeouts: connect=10s, read=60s, max_attempts=1")


def fetch_json(bucket: str, key: str) -> Optional[Any]:
    """
    Fetch an object from S3 and parse it as UTF-8 JSON.

    Args:
        bucket: S3 bucket name
        key: S3 object key

    Returns:
        The parsed JSON value, or None if the object could not be read
        or is not valid JSON

    Example:
        >>> send_request = fetch_json("email-bucket", "requests/r1.json")
        >>> send_request['customArgs']['requestId']
        'r1'
    """
    try:
        response = s3_client.get_object(Bucket=bucket, Key=key)
        body = response['Body'].read()
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        if error_code == 'NoSuchKey':
            logger.error(f"S3 object not found: s3://{bucket}/{key}")
        elif error_code == 'NoSuchBucket':
            logger.error(f"S3 bucket not found: {bucket}")
        else:
            logger.error(f"Failed to fetch from S3 s3://{bucket}/{key}: {e}")
        return None
    except BotoCoreError as e:
        logger.error(f"Failed to fetch from S3 s3://{bucket}/{key}: {e}")
        return None
    except Exception as e:
        logger.error(f"Unexpected error fetching from S3 s3://{bucket}/{key}: {e}", exc_info=True)
        return None

    try:
        return json.loads(body.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        logger.error(f"Object s3://{bucket}/{key} is not valid JSON: {e}")
        return None


def put_json(key: str, bucket: str, value: Any) -> StoreResult:
    """
    Serialize a value to JSON and write it to S3.

    Args:
        key: S3 object key (where to write the document)
        bucket: S3 bucket name
        value: JSON-serializable value

    Returns:
        StoreResult: success=False with error_message when the write failed

    Example:
        >>> result = put_json("responses/202/r1__abc123.json", "email-bucket", response)
        >>> result.success
        True
    """
    try:
        body = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize value for s3://{bucket}/{key}: {e}")
        return StoreResult(success=False, bucket=bucket, key=key, error_message=str(e))

    try:
        logger.info(
            f"Uploading JSON to S3: bucket={bucket}, key={key}, "
            f"size={len(body)} bytes"
        )

        s3_client.put_object(
            Bucket=bucket,
            Key=key,
            Body=body.encode('utf-8'),
            ContentType='application/json'
        )

        logger.info(f"Successfully uploaded JSON to S3: bucket={bucket}, key={key}")
        return StoreResult(success=True, bucket=bucket, key=key)

    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))

        logger.error(
            f"Failed to upload JSON to S3: "
            f"bucket={bucket}, key={key}, "
            f"error_code={error_code}, error_message={error_message}"
        )
        return StoreResult(
            success=False,
            bucket=bucket,
            key=key,
            error_message=f"{error_code}: {error_message}"
        )
    except BotoCoreError as e:
        logger.error(f"Failed to upload JSON to S3: bucket={bucket}, key={key}, error={e}")
        return StoreResult(success=False, bucket=bucket, key=key, error_message=str(e))
