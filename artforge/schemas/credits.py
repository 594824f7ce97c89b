from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class CreditBalance(BaseModel):
    credits: int
    total_purchased: int
    total_consumed: int


class CreditTransactionItem(BaseModel):
    id: int
    kind: str
    amount: int
    description: Optional[str]
    ref_id: Optional[str]
    created_at: datetime


class CreditPackageItem(BaseModel):
    id: str
    name: str
    credits: int
    price_cents: int
    price_display: str
    discount_percentage: Optional[int] = None
    popular: bool = False


class GenerationCost(BaseModel):
    content_type: str
    quality: str
    credits: int


class CheckoutRequest(BaseModel):
    package_id: str


class CheckoutResponse(BaseModel):
    session_id: str
    checkout_url: Optional[str] = None


class PaymentSessionStatus(BaseModel):
    session_id: str
    package_id: str
    credits: int
    amount_cents: int
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None


class WebhookAck(BaseModel):
    received: bool = True


class TransactionHistory(BaseModel):
    items: List[CreditTransactionItem]
    limit: int
    offset: int
