from typing import Optional

from pydantic import BaseModel, Field

from arena.models.payout_model import PayoutMethod, PayoutStatus

class PayoutUpdateRequest(BaseModel):
    status: PayoutStatus = Field(..., description="paid or failed")
    reference: Optional[str] = Field(None, description="Transaction reference when paid, failure reason when failed")
    method: Optional[PayoutMethod] = Field(None, description="How the money was sent")
