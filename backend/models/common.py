# backend/models/common.py

import re
from typing import Annotated

from bson import ObjectId
from pydantic import AfterValidator

PHONE_RE = re.compile(r"^[+]?[\d\s\-()]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")


def _object_id(v: str) -> str:
    v = (v or "").strip()
    if not ObjectId.is_valid(v):
        raise ValueError("must be a valid id")
    return v


def _email(v: str) -> str:
    v = (v or "").strip().lower()
    if not EMAIL_RE.match(v):
        raise ValueError("Valid email required")
    return v


def _phone(v: str) -> str:
    v = (v or "").strip()
    if not PHONE_RE.match(v):
        raise ValueError("Valid phone number required")
    return v


ObjectIdStr = Annotated[str, AfterValidator(_object_id)]
Email = Annotated[str, AfterValidator(_email)]
Phone = Annotated[str, AfterValidator(_phone)]
