"""DynamoDB session store for production deployments."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Callable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..data import utcnow
from ..errors import StoreError

logger = logging.getLogger(__name__)


class DynamoDBStore:
    """Session store using AWS DynamoDB.

    Table schema:
        Partition key: token (S)
        Attributes: data (B, encoded session), expiry (N, epoch seconds)

    Enable TTL on the ``expiry`` attribute for automatic cleanup. DynamoDB
    may keep expired items for a while, so :meth:`find` checks the expiry
    itself and deletes stale items it comes across.
    """

    def __init__(
        self,
        table_name: str = "sessionkit_sessions",
        endpoint_url: str = "",
        region_name: str = "us-west-2",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._table_name = table_name
        self._clock = clock
        self._session = boto3.session.Session()
        self._client = self._session.client(
            "dynamodb",
            endpoint_url=endpoint_url or None,
            region_name=region_name,
        )

    def find(self, token: str) -> tuple[bytes | None, bool]:
        try:
            response = self._client.get_item(
                TableName=self._table_name,
                Key={"token": {"S": token}},
                ConsistentRead=True,
            )
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"DynamoDB get_item failed: {e}") from e

        item = response.get("Item")
        if item is None:
            return None, False

        expiry = float(item["expiry"]["N"])
        if self._clock().timestamp() > expiry:
            self.delete(token)
            return None, False
        return bytes(item["data"]["B"]), True

    def commit(self, token: str, data: bytes, expiry: datetime) -> None:
        try:
            self._client.put_item(
                TableName=self._table_name,
                Item={
                    "token": {"S": token},
                    "data": {"B": data},
                    "expiry": {"N": str(math.ceil(expiry.timestamp()))},
                },
            )
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"DynamoDB put_item failed: {e}") from e

    def delete(self, token: str) -> None:
        try:
            self._client.delete_item(
                TableName=self._table_name,
                Key={"token": {"S": token}},
            )
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"DynamoDB delete_item failed: {e}") from e
