from pydantic import BaseModel, ConfigDict, Field


class Portal02WebhookPayload(BaseModel):
    # The provider adds fields without notice; keep them for the metadata snapshot.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    event: str | None = None
    order_id: str | int | None = Field(default=None, alias="orderId")
    reference: str | None = None
    status: str | None = None
    recipient: str | None = None
    volume: float | str | None = None


class WebhookAck(BaseModel):
    received: bool = True
    outcome: str
