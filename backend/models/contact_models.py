# backend/models/contact_models.py

from pydantic import BaseModel, Field

from backend.models.common import Email, ObjectIdStr, Phone


class ContactInfo(BaseModel):
    email: Email
    phone: Phone


class ContactCreateRequest(BaseModel):
    grainId: ObjectIdStr
    subject: str = Field(..., min_length=5, max_length=200)
    message: str = Field(..., min_length=10, max_length=2000)
    contactInfo: ContactInfo
