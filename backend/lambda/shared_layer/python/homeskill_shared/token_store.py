"""homeskill_shared.token_store — S3 as a simple backing store for users' OAuth tokens.

Tokens are stored as JSON documents named by the user's id. Limit access to the
bucket and enable encryption at rest; the documents hold live credentials.

S3 is read here without any read-after-write guarantee: a read issued right
after a write may still return the previous token.
"""

from __future__ import annotations

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from homeskill_shared.aws_clients import _get_s3
from homeskill_shared.errors import SerializationError, TokenStoreError
from homeskill_shared.oauth import OAuthToken
from homeskill_shared.serialization import _dumps, _loads

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("NoSuchKey", "404", "NotFound")


class S3TokenStore:
    def __init__(self, bucket: str, s3=None):
        self.bucket = bucket
        self._s3 = s3

    @property
    def s3(self):
        if self._s3 is None:
            self._s3 = _get_s3()
        return self._s3

    def write(self, user_id: str, token: OAuthToken) -> None:
        content = _dumps(token.to_dict()).encode("utf-8")
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=user_id,
                Body=content,
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as exc:
            raise TokenStoreError(f"failed to upload to s3: {exc}") from exc

    def read(self, user_id: str) -> Optional[OAuthToken]:
        """Return the stored token, or None when the user has never granted access."""
        try:
            resp = self.s3.get_object(Bucket=self.bucket, Key=user_id)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return None
            raise TokenStoreError(f"failed to retrieve from s3: {exc}") from exc
        except BotoCoreError as exc:
            raise TokenStoreError(f"failed to retrieve from s3: {exc}") from exc

        body = resp["Body"]
        try:
            raw = body.read()
        except (BotoCoreError, OSError) as exc:
            raise TokenStoreError(f"failed to read s3 data: {exc}") from exc
        finally:
            body.close()

        try:
            return OAuthToken.from_dict(_loads(raw))
        except SerializationError as exc:
            raise TokenStoreError(f"failed to unmarshal token: {exc}") from exc
