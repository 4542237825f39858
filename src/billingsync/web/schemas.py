"""Request and response bodies for the HTTP surface."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class VerifyPurchaseBody(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    user_id: str
    package_name: str
    product_id: str
    purchase_token: str


class ApiResponse(BaseModel):
    success: bool
    message: str
    data: dict[str, object] | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
