"""Customer projections that are safe to return to callers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CustomerProfile(BaseModel):
    """The sanitized customer projection.

    Internal columns such as ``auth_user_id`` and ``notes`` are deliberately
    absent, so building this model from an ORM row drops them.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    full_name: str | None = None
    phone: str | None = None
    customer_type: str = "individual"
    company_name: str | None = None
