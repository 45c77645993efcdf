"""
AWS service functions for Lambda handler operations.

This package contains reusable service functions for S3 object storage and
SNS notification publishing.
"""

__all__ = ['s3', 'sns']
