"""Payment gateway request and response payloads."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GatewayModel(BaseModel):
    """Base for gateway payloads: camelCase on the wire, snake_case in code."""
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class PaymentStatusRequest(GatewayModel):
    """Payment status query."""
    account_reference: Optional[str] = Field(None, alias="smsAccountNo")
    channel_id: str = Field(..., alias="channelId")
    reference_number: str = Field(..., alias="refNo")
    transaction_id: str = Field(..., alias="payerTransactionId")


class DisputeRequest(PaymentStatusRequest):
    """Dispute (correction) request for a previously submitted payment."""
    dispute_type: int = Field(..., alias="disputeType")


class PaymentStatusResult(GatewayModel):
    status_code: Optional[str] = Field(None, alias="status")
    account_reference: Optional[str] = Field(None, alias="smsAccountNo")
    reference_number: Optional[str] = Field(None, alias="refNo")
    transaction_id: Optional[str] = Field(None, alias="payerTransactionId")
    message: Optional[str] = None


class PaymentStatusResponse(GatewayModel):
    """Payment status as reported by the gateway."""
    response_code: Optional[str] = Field(None, alias="responseCode")
    message: Optional[str] = None
    result: Optional[PaymentStatusResult] = None

    @property
    def is_successful(self) -> bool:
        return self.response_code == "000" and self.result is not None


class DisputeError(GatewayModel):
    code: Optional[str] = None
    message: Optional[str] = None


class DisputeData(GatewayModel):
    message: Optional[str] = None


class DisputeResponse(GatewayModel):
    """Dispute filing result; status 200 with data means accepted."""
    status: Optional[int] = None
    data: Optional[DisputeData] = None
    errors: List[DisputeError] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def default_errors(cls, v):
        return v or []

    @property
    def is_accepted(self) -> bool:
        return self.status == 200 and self.data is not None

    def error_messages(self) -> List[str]:
        """Gateway errors formatted as "[code] message", in response order."""
        return [f"[{error.code}] {error.message}" for error in self.errors]
