"""Request bodies for the REST endpoints."""

from pydantic import BaseModel, Field


class MessageItem(BaseModel):
    """One entry of a dynamic bulk SMS: its own body and recipient."""

    Body: str = Field(..., description="SMS body for this recipient")
    To: str = Field(..., description="Recipient phone number")


class BulkSmsRequest(BaseModel):
    """Same SMS to many numbers."""

    toNumber: list[str] = Field(..., min_length=1, description="Recipient phone numbers")
    message: str = Field(..., description="SMS body")


class BulkDynamicSmsRequest(BaseModel):
    """Different SMS per recipient."""

    message: list[MessageItem] = Field(..., min_length=1)
