from __future__ import annotations

"""Pydantic request schemas for the public API.

Amounts are base-unit integers. Clients may send them as JSON numbers or as
decimal strings (values above 2**53 do not survive JavaScript numbers); the
engine parses and range-checks them.
"""

from typing import List, Union

from pydantic import BaseModel, Field

Amount = Union[int, str]


class SetPoolRequest(BaseModel):
    total: Amount = Field(..., description="New pool total (replaces the old one)")
    max_send: Amount = Field(..., description="Per-claim ceiling; 0 disables claims")
    is_native: bool = Field(default=False, description="True only for the native asset id")


class AdminSendRequest(BaseModel):
    asset: str
    to: str
    amount: Amount


class AdminBatchSendRequest(BaseModel):
    asset: str
    recipients: List[str] = Field(..., description="Payout order is preserved")
    max_send: Amount


class WithdrawRequest(BaseModel):
    asset: str
    amount: Amount


class AmountRequest(BaseModel):
    amount: Amount


class FundPoolRequest(BaseModel):
    amount: Amount
    is_native: bool = False
    # Native value attached to the call; must equal amount for the native asset.
    value: Amount = 0


class TopUpRequest(BaseModel):
    amount: Amount
    value: Amount = 0
