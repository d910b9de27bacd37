"""Pydantic models for dispatch requests and results."""

from http import HTTPStatus
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class DispatchRequest(BaseModel):
    """Arguments of one repository_dispatch call."""

    owner: str = Field(..., min_length=1, examples=["acme"])
    repo: str = Field(..., min_length=1, examples=["widgets"])
    event_type: str = Field(..., min_length=1, examples=["build"])
    client_payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("owner", "repo", "event_type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("client_payload", mode="before")
    @classmethod
    def _payload_default(cls, value: Any) -> Any:
        # null is the same as omitting the payload
        return {} if value is None else value


class DispatchResult(BaseModel):
    """Normalized upstream response.

    ``ok`` is derived from the status code only; ``body`` is the raw upstream
    text and is never re-parsed.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status: int
    status_text: str = Field(default="", alias="statusText")
    body: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @classmethod
    def from_status(cls, status: int, reason: str | None = None, body: str = "") -> "DispatchResult":
        """Build a result, filling in the standard reason phrase when none was sent."""
        if not reason:
            try:
                reason = HTTPStatus(status).phrase
            except ValueError:
                reason = ""
        return cls(status=status, status_text=reason, body=body)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape shared by every dialect."""
        return {
            "ok": self.ok,
            "status": self.status,
            "statusText": self.status_text,
            "body": self.body,
        }
