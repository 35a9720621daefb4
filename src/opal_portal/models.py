from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Card(BaseModel):
    # Cards can be renamed to almost anything; unnamed cards show their number.
    name: str
    balance_cents: int


class Overview(BaseModel):
    cards: list[Card] = Field(default_factory=list)


class Transaction(BaseModel):
    number: int
    when: datetime
    mode: str = ""  # "train", "bus", ... when the portal shows a mode icon
    details: str
    journey_number: int = 0  # numbered within the week, when known

    fare_applied: str = ""  # e.g. "Off-peak", "Default fare"
    fare_cents: int = 0
    discount_cents: int = 0
    amount_cents: int = 0  # negative = debit


class Activity(BaseModel):
    card_name: str
    transactions: list[Transaction] = Field(default_factory=list)


class ActivityRequest(BaseModel):
    """
    Which card's activity to load, and which page of its history (0 = most recent).
    """

    card_index: int = Field(default=0, ge=0)
    page: int = Field(default=0, ge=0)


class StoredCookie(BaseModel):
    name: str
    value: str = Field(repr=False)
    domain: str = ""
    path: str = "/"
    expires: Optional[int] = None
    secure: bool = False


class Auth(BaseModel):
    username: str
    password: str = Field(repr=False)
    cookies: list[StoredCookie] = Field(default_factory=list)
