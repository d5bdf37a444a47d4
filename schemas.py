import datetime as dt
from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from models import LedgerType


class CategoryIn(BaseModel):
    type: LedgerType
    name: str = Field(..., min_length=1, max_length=100)


class BudgetIn(BaseModel):
    amount: int


class ExpenditureRatioIn(BaseModel):
    fixed: int
    variable: int


class LedgerEntryIn(BaseModel):
    type: LedgerType
    content: str = Field(..., min_length=1, max_length=200)
    cost: int
    date: date
    category_name: str = Field(..., max_length=100)
    payment_method: str = Field(..., max_length=50)


class AssetGoalIn(BaseModel):
    content: str = Field(..., min_length=1)
    date: date


class MoneyLogIn(BaseModel):
    date: date
    content: str = Field(..., min_length=1)


class PageParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    sort: Literal["newest", "oldest"] = "newest"


class LedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: LedgerType
    content: str
    cost: int
    date: dt.date
    category_name: str
    payment_method: str
