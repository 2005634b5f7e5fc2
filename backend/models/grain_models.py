# backend/models/grain_models.py

from datetime import date
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

GrainType = Literal[
    "Wheat", "Rice", "Corn", "Barley", "Oats", "Rye", "Sorghum",
    "Millet", "Quinoa", "Buckwheat", "Soybeans", "Lentils",
    "Chickpeas", "Black Beans", "Kidney Beans", "Other",
]

Quality = Literal["Premium", "Good", "Standard"]


class ListingStatus(str, Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    RESERVED = "reserved"


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class GrainCreateRequest(BaseModel):
    """Form fields of a new listing (images travel separately as files)."""
    grainType: GrainType
    quantity: float = Field(..., ge=0.1)
    pricePerQuintal: float = Field(..., ge=1)
    quality: Quality
    description: str = Field(..., min_length=10, max_length=1000)
    location: str = Field(..., min_length=1, max_length=200)
    harvestDate: date
    moistureContent: Optional[float] = Field(None, ge=0, le=100)
    organicCertified: bool = False

    @field_validator("moistureContent", mode="before")
    @classmethod
    def _blank_moisture(cls, v):
        return _blank_to_none(v)

    @field_validator("organicCertified", mode="before")
    @classmethod
    def _blank_organic(cls, v):
        return False if _blank_to_none(v) is None else v


class GrainUpdateRequest(BaseModel):
    quantity: Optional[float] = Field(None, ge=0.1)
    pricePerQuintal: Optional[float] = Field(None, ge=1)
    quality: Optional[Quality] = None
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    moistureContent: Optional[float] = Field(None, ge=0, le=100)
    organicCertified: Optional[bool] = None


class GrainQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    grainType: Optional[str] = None
    location: Optional[str] = None
    quality: Optional[Quality] = None
    minPrice: Optional[float] = Field(None, ge=0)
    maxPrice: Optional[float] = Field(None, ge=0)
    organicOnly: bool = False

    @field_validator("grainType", "location", "quality", "minPrice", "maxPrice", mode="before")
    @classmethod
    def _blank(cls, v):
        return _blank_to_none(v)
