# Models with validation
from pydantic import BaseModel, ConfigDict, Field

# API request models
class AirdropRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    wallet_address: str | None = Field(default=None, alias="walletAddress")


class AirdropResponse(BaseModel):
    success: bool = True
    signature: str
    amount: int
    message: str


class ErrorResponse(BaseModel):
    error: str
