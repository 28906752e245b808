# backend/app/models/user_models.py

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# -------------------------
# Login model
# -------------------------
class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class RefreshIn(BaseModel):
    refresh_token: Optional[str] = None


# -------------------------
# Tokens issued by the auth service
# -------------------------
class AuthTokens(BaseModel):
    access_token: str
    refresh_token: str


# -------------------------
# Per-request user projection
# -------------------------
class UserOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_uuid: str = Field(..., alias="userUuid")
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    organization_uuid: str = Field("", alias="organizationUuid")
    organization_name: str = Field("", alias="organizationName")
    is_active: bool = Field(True, alias="isActive")

    @classmethod
    def from_user_info(cls, info: Dict[str, Any]) -> "UserOut":
        """Map the auth service `/users/info` payload onto our projection."""
        user_id = info.get("id")
        if user_id is None or str(user_id).strip() == "":
            raise ValueError("User info has no id")

        tenant = info.get("tenant") or {}
        return cls(
            user_uuid=str(user_id),
            first_name=info.get("fname"),
            last_name=info.get("lname"),
            email=info.get("email"),
            phone_number=info.get("phone"),
            organization_uuid=str(tenant.get("id") or ""),
            organization_name=tenant.get("tenant_name") or "",
        )

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
