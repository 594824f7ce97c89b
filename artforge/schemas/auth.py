from typing import Optional
from pydantic import BaseModel, ConfigDict


class AccountResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    credits: int
    total_purchased: int
    total_consumed: int
    created_at: str
