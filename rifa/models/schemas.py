from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
import uuid

from pydantic import BaseModel, EmailStr, Field


class OperationResult(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str
    time: datetime


class MigrationRunResponse(OperationResult):
    status: str
    applied_at: datetime


class RaffleCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=120)
    total_numbers: int = Field(..., ge=1, le=100000)
    admin_password: str = Field(..., min_length=6, max_length=128)
    price_per_number: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)


class RaffleCreated(OperationResult):
    raffle_id: str
    friendly_id: str


class RaffleOut(OperationResult):
    id: str
    title: Optional[str]
    total_numbers: int
    price_per_number: Decimal
    currency: str
    friendly_id: Optional[str]
    created_at: datetime


class RaffleNumbersResponse(OperationResult):
    raffle_id: str
    total_numbers: int
    sold_count: int
    available_count: int
    available: list[int]
    sold: list[int]


class PurchaseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    cpf: str = Field(..., pattern=r"^\d{11}$")
    numbers: list[int] = Field(..., min_length=1)
    payment_id: Optional[uuid.UUID] = None


class PurchaseOut(OperationResult):
    purchase_id: str
    raffle_id: str
    numbers: list[int]
    payment_id: Optional[str] = None
    created_at: datetime


class PurchaseRecord(BaseModel):
    id: str
    raffle_id: str
    name: str
    cpf: str
    numbers: list[int]
    payment_id: Optional[str]
    created_at: datetime


class PurchaseList(OperationResult):
    purchases: list[PurchaseRecord]


class PurchaseDeleted(OperationResult):
    status: str
    purchase_id: str


class AdminLoginRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=128)


class AdminLoginResponse(OperationResult):
    is_valid: bool
    expires_at: Optional[datetime] = None


class AdminSessionResponse(OperationResult):
    authenticated: bool
    expires_at: Optional[datetime] = None


class DrawRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class WinnerRecord(BaseModel):
    id: str
    raffle_id: str
    purchase_id: Optional[str]
    winner_name: str
    winner_cpf: str
    winning_number: int
    drawn_at: datetime
    notes: Optional[str]


class DrawResponse(OperationResult):
    winner: WinnerRecord


class WinnerList(OperationResult):
    winners: list[WinnerRecord]


class PaymentIntentCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=120)
    customer_email: Optional[EmailStr] = None
    number_count: int = Field(..., gt=0)
    payment_method: Literal["card", "pix"] = "card"


class PixInfo(BaseModel):
    qr_code: Optional[str]
    qr_code_data: Optional[str]
    expires_at: datetime


class PaymentIntentOut(OperationResult):
    payment_id: str
    client_secret: Optional[str]
    payment_method: str
    amount: Decimal
    currency: str
    pix: Optional[PixInfo] = None


class PaymentRecord(BaseModel):
    id: str
    raffle_id: str
    purchase_id: Optional[str]
    payment_intent_id: str
    amount: Decimal
    currency: str
    status: str
    payment_method: Optional[str]
    customer_name: Optional[str]
    customer_email: Optional[str]
    created_at: datetime
    updated_at: datetime


class PaymentOut(OperationResult):
    payment: PaymentRecord


class PaymentList(OperationResult):
    payments: list[PaymentRecord]


class PaymentStats(OperationResult):
    total_amount: Decimal
    successful_payments: int
    failed_payments: int
    pending_payments: int
    currency: str


class PaymentStatusOut(OperationResult):
    status: str
    is_paid: bool


class PaymentLinkRequest(BaseModel):
    purchase_id: uuid.UUID


class PaymentLinked(OperationResult):
    payment_id: str
    purchase_id: str


class WebhookAck(BaseModel):
    received: bool
