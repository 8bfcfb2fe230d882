"""homeskill_shared.aws_clients — Lazy-singleton AWS service clients.

Clients are created on first use and cached for the life of the process, so a
cold Lambda only pays for the clients it actually touches.
"""

from __future__ import annotations

from typing import Optional

import boto3
from botocore.config import Config

from homeskill_shared.config import AWS_REGION

_sqs = None
_s3 = None


def _get_sqs(region: Optional[str] = None):
    """Get (or create) the SQS client singleton."""
    global _sqs
    if _sqs is None:
        _sqs = boto3.client(
            "sqs",
            region_name=region or AWS_REGION,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )
    return _sqs


def _get_s3(region: Optional[str] = None):
    """Get (or create) the S3 client singleton."""
    global _s3
    if _s3 is None:
        _s3 = boto3.client(
            "s3",
            region_name=region or AWS_REGION,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )
    return _s3
