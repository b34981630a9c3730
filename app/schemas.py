"""Pydantic schemas for the WebSocket, MQTT and HTTP surfaces."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AllowInfNan,
    BaseModel,
    ConfigDict,
    Field,
    Strict,
    StrictInt,
    StrictStr,
    field_validator,
)

# Booleans, numeric strings and non-finite floats are rejected rather than coerced.
Quantity = Union[StrictInt, Annotated[float, Strict(), AllowInfNan(False)]]


class SensorPayload(BaseModel):
    """Inbound body on the sensor topic; all three readings are required."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    temperature: float
    ph: float = Field(..., alias="pH")
    turbidity: float

    @field_validator("temperature", "ph", "turbidity", mode="before")
    @classmethod
    def _reject_booleans(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("booleans are not sensor readings")
        return value


class SensorSnapshot(BaseModel):
    """Latest known value per sensor kind; ``None`` until first reported."""

    model_config = ConfigDict(populate_by_name=True)

    temperature: Optional[float] = None
    ph: Optional[float] = Field(default=None, alias="pH")
    turbidity: Optional[float] = None


class SensorEnvelope(BaseModel):
    """Push message carrying the current snapshot to UI clients."""

    type: Literal["sensor"] = "sensor"
    data: SensorSnapshot


class FeedingSchedule(BaseModel):
    """Most recent scheduled feeding request, forwarded to the feeder."""

    time: Optional[str] = None
    quantity: Optional[Quantity] = None


class ScheduledFeedRequest(BaseModel):
    """Client request carrying both a feeding time and a quantity."""

    time: StrictStr = Field(..., min_length=1)
    quantity: Quantity


class InstantFeedCommand(BaseModel):
    """One-shot feeding command published on the control topic."""

    feed_now: Literal[True] = True
    quantity: Quantity


class CommandReply(BaseModel):
    """Direct acknowledgement sent to the client that issued a command."""

    status: Literal["success"] = "success"
    message: str


class BridgeState(BaseModel):
    """Read-only view of the bridge served over HTTP."""

    sensor: SensorSnapshot
    schedule: FeedingSchedule
    clients: int = Field(..., ge=0)
