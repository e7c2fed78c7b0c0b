from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Personality(str, Enum):
    PROFESSIONAL = "professional"
    STRICT = "strict"
    SARCASTIC = "sarcastic"


class Currency(str, Enum):
    INR = "INR"
    USD = "USD"

    @property
    def symbol(self) -> str:
        return "₹" if self is Currency.INR else "$"

    def format(self, amount: float) -> str:
        if amount == int(amount):
            return f"{self.symbol}{amount:,.0f}"
        return f"{self.symbol}{amount:,.2f}"


@dataclass(frozen=True)
class AdvisoryConfig:
    """Per-call presentation settings; only changes prompt wording and symbols."""

    personality: Personality = Personality.PROFESSIONAL
    currency: Currency = Currency.INR


@dataclass(frozen=True)
class PacingState:
    weekly_expense_total: float
    days_elapsed_in_week: int
    velocity: float
    weekly_budget: float
    week_start: date = field(compare=False)

    @property
    def percent_used(self) -> int:
        return round(self.weekly_expense_total / self.weekly_budget * 100)

    def to_dict(self) -> dict:
        return {
            "weekly_expense_total": round(self.weekly_expense_total, 2),
            "days_elapsed_in_week": self.days_elapsed_in_week,
            "velocity": round(self.velocity, 4),
            "weekly_budget": self.weekly_budget,
            "percent_used": self.percent_used,
            "week_start": self.week_start.isoformat(),
        }


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategoryPrediction(_CamelModel):
    category: str
    predicted_amount: float = Field(ge=0)


class BudgetForecast(_CamelModel):
    """7-day spending prediction returned by the remote model."""

    predicted_total: float = Field(ge=0)
    confidence: float = Field(ge=0, le=1)
    top_predicted_categories: List[CategoryPrediction] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)

    @field_validator("top_predicted_categories")
    @classmethod
    def _keep_top_three(cls, value: List[CategoryPrediction]) -> List[CategoryPrediction]:
        return value[:3]


class AdviceRequest(BaseModel):
    message: str = Field(min_length=1)
    weekly_budget: float = Field(gt=0)
    personality: Personality = Personality.PROFESSIONAL
    currency: Currency = Currency.INR

    def advisory_config(self) -> AdvisoryConfig:
        return AdvisoryConfig(personality=self.personality, currency=self.currency)


class SubscribeRequest(BaseModel):
    weekly_budget: float = Field(gt=0)
    personality: Personality = Personality.PROFESSIONAL
    currency: Currency = Currency.INR
    native: bool = False

    def advisory_config(self) -> AdvisoryConfig:
        return AdvisoryConfig(personality=self.personality, currency=self.currency)
