import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from expenso.core.config import settings
from expenso.core.errors import StoreError
from expenso.models.transaction import Transaction, TransactionCreate

logger = logging.getLogger(__name__)


class TransactionStore:
    """
    Transactions table: partition key user_id, sort key transaction_id.
    Whole-list reads only; there is no update operation.
    """

    def __init__(self, table=None) -> None:
        if table is None:
            dynamodb = boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)
            table = dynamodb.Table(settings.DYNAMO_TRANSACTIONS_TABLE)
        self.table = table

    def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        """All transactions for a user, newest date first."""
        items: List[Dict[str, Any]] = []
        query: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
        try:
            while True:
                response = self.table.query(**query)
                items.extend(_from_dynamo(item) for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"list_by_user failed: {e}")
            raise StoreError(f"Could not list transactions for {user_id}") from e

        items.sort(key=lambda item: (item.get("date", ""), item.get("created_at", "")), reverse=True)
        return items

    def add(self, user_id: str, transaction: TransactionCreate) -> str:
        record = Transaction(
            user_id=user_id,
            transaction_id=str(uuid4()),
            created_at=datetime.utcnow().isoformat(),
            **transaction.model_dump(),
        )
        try:
            self.table.put_item(Item=_convert_for_dynamo(record.model_dump(mode="json")))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"add failed: {e}")
            raise StoreError("Could not save transaction") from e
        return record.transaction_id

    def get(self, user_id: str, transaction_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.get_item(Key={"user_id": user_id, "transaction_id": transaction_id})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"get failed: {e}")
            raise StoreError("Could not read transaction") from e
        item = response.get("Item")
        return _from_dynamo(item) if item else None

    def delete(self, user_id: str, transaction_id: str) -> bool:
        """Hard delete. Returns False when nothing matched."""
        try:
            response = self.table.delete_item(
                Key={"user_id": user_id, "transaction_id": transaction_id},
                ReturnValues="ALL_OLD",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"delete failed: {e}")
            raise StoreError("Could not delete transaction") from e
        return "Attributes" in response

    def ping(self) -> None:
        self.table.scan(Limit=1)


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
