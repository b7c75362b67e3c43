# src/schemas.py
"""Input schemas for actions (pydantic)."""

import uuid
from datetime import date
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


DURATION_UNITS = {"minutes": 1, "hours": 60}


def duration_to_minutes(value: Any, unit: str = "minutes") -> Any:
    """Convert a duration typed in `unit` to whole minutes.

    Blank input becomes None; text that is not a number is returned as-is so
    TradeSchema reports it.
    """
    if unit not in DURATION_UNITS:
        raise ValueError(f"Unknown duration unit: {unit}")
    value = _blank_to_none(value)
    if value is None:
        return None
    try:
        amount = float(str(value).replace(",", "."))
    except ValueError:
        return value
    return int(round(amount * DURATION_UNITS[unit]))


class SignUpSchema(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    confirm_password: str = Field(min_length=8)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value, info: ValidationInfo):
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords do not match.")
        return value


class SignInSchema(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)


class JournalSchema(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, value):
        return _blank_to_none(value)


class ListItemSchema(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class TradeSchema(BaseModel):
    """New trade. `profit_loss_amount` accepts "1,5" style decimals."""

    model_config = ConfigDict(extra="ignore")

    trade_date: date
    asset_id: Optional[str] = None
    session_id: Optional[str] = None
    setup_id: Optional[str] = None
    risk_input: str = Field(min_length=1)
    profit_loss_amount: float
    tradingview_link: Optional[str] = None
    notes: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)

    @field_validator("trade_date", mode="before")
    @classmethod
    def required_date(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("Trade date is required.")
        return value

    @field_validator("asset_id", "session_id", "setup_id", mode="before")
    @classmethod
    def reference_id(cls, value):
        value = _blank_to_none(value)
        if value is None:
            return None
        try:
            uuid.UUID(str(value))
        except ValueError:
            raise ValueError("The selected item is not valid.")
        return str(value)

    @field_validator("profit_loss_amount", mode="before")
    @classmethod
    def decimal_comma(cls, value):
        if isinstance(value, str):
            try:
                return float(value.strip().replace(",", "."))
            except ValueError:
                raise ValueError("Profit/loss must be a number.")
        return value

    @field_validator("tradingview_link", mode="before")
    @classmethod
    def link(cls, value):
        value = _blank_to_none(value)
        if value is None:
            return None
        parsed = urlparse(str(value))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("The chart link must be a valid URL.")
        return str(value)

    @field_validator("notes", mode="before")
    @classmethod
    def blank_notes(cls, value):
        return _blank_to_none(value)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def blank_duration(cls, value):
        return _blank_to_none(value)


class TradeUpdateSchema(TradeSchema):
    """Partial trade edit; only fields present in the input are validated."""

    trade_date: Optional[date] = None
    risk_input: Optional[str] = Field(default=None, min_length=1)
    profit_loss_amount: Optional[float] = None


def format_issues(exc: ValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into `{path, message}` pairs."""
    issues = []
    for error in exc.errors():
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        issues.append({"path": [str(p) for p in error["loc"]], "message": message})
    return issues
