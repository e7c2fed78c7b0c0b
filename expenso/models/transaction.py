from datetime import date as Date, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionCreate(BaseModel):
    amount: float = Field(gt=0)
    type: TransactionType
    category: str = Field(min_length=1)
    date: Date = Field(default_factory=Date.today)
    description: Optional[str] = ""


class Transaction(BaseModel):
    user_id: str
    transaction_id: str = Field(default_factory=lambda: str(uuid4()))
    amount: float = Field(gt=0)
    type: TransactionType
    category: str
    date: Date
    description: Optional[str] = ""
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class TransactionPublic(BaseModel):
    transaction_id: str
    amount: float
    type: TransactionType
    category: str
    date: Date
    description: Optional[str] = ""
    created_at: str
