from datetime import datetime
from uuid import uuid4
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field

class PayoutStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    VOID = "void" # superseded by a dispute rollback before settlement

class PayoutMethod(str, Enum):
    BANK_TRANSFER = "bank-transfer"
    WALLET = "wallet"

class PayoutRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    tournament_id: str
    participant_id: str
    placement: int = Field(ge=1)
    amount: int = Field(gt=0)
    status: PayoutStatus = PayoutStatus.PENDING
    method: Optional[PayoutMethod] = None
    transaction_ref: Optional[str] = None
    failure_reason: Optional[str] = None
    retry_of: Optional[str] = None # id of the failed record this one follows up
    created_at: datetime = Field(default_factory=datetime.utcnow)
    settled_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        use_enum_values = True

    @property
    def is_active(self) -> bool:
        """Pending or paid: the record still stands for a real obligation."""
        return self.status in (PayoutStatus.PENDING, PayoutStatus.PAID)
