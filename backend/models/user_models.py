# backend/models/user_models.py

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from backend.models.common import Email, Phone

Role = Literal["farmer", "buyer"]


# ---------------- role-tagged profile data ----------------
class FarmerProfile(BaseModel):
    role: Literal["farmer"] = "farmer"
    address: Optional[str] = Field(None, max_length=500)


class BuyerProfile(BaseModel):
    role: Literal["buyer"] = "buyer"
    officeName: Optional[str] = Field(None, max_length=200)
    officeAddress: Optional[str] = Field(None, max_length=500)
    gstNumber: Optional[str] = Field(None, max_length=20)


RoleProfile = Annotated[Union[FarmerProfile, BuyerProfile], Field(discriminator="role")]
_PROFILE = TypeAdapter(RoleProfile)

PROFILE_FIELDS = {
    "farmer": ("address",),
    "buyer": ("officeName", "officeAddress", "gstNumber"),
}


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: Email
    password: str = Field(..., min_length=6)
    phone: Phone
    role: Role

    # farmer
    address: Optional[str] = Field(None, max_length=500)
    # buyer
    officeName: Optional[str] = Field(None, max_length=200)
    officeAddress: Optional[str] = Field(None, max_length=500)
    gstNumber: Optional[str] = Field(None, max_length=20)

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    def profile(self) -> Union[FarmerProfile, BuyerProfile]:
        """The profile variant selected by `role`; other-role fields are dropped."""
        data = self.model_dump(include={"role", *PROFILE_FIELDS[self.role]})
        return _PROFILE.validate_python(data)


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[Phone] = None

    address: Optional[str] = Field(None, max_length=500)
    officeName: Optional[str] = Field(None, max_length=200)
    officeAddress: Optional[str] = Field(None, max_length=500)
    gstNumber: Optional[str] = Field(None, max_length=20)

    @field_validator("name", "address", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class UserListQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
