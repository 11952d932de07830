from __future__ import annotations
import logging
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Cards shown under an assistant message, the query itself may return more
DISPLAY_LIMIT = 5

REQUIRED_DRAFT_FIELDS = ("title", "brand", "year", "price")


def _whole_number(value: Any) -> Optional[int]:
    # Model output is untrusted: only real JSON numbers count, bool is not a number here
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        number = int(round(value))
    else:
        logger.debug("Dropping non numeric value %r", value)
        return None
    return number if number >= 0 else None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# The catalog rows for everything a listing has
class Listing(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: Optional[str] = None
    title: str
    brand: str
    model: str
    year: int = Field(gt=0)
    price: int = Field(gt=0)
    mileage: Optional[int] = Field(default=None, ge=0)
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    body_type: Optional[str] = None
    color: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    is_sold: bool = False
    is_approved: bool = False
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("images", mode="before")
    @classmethod
    def _images(cls, v: Any) -> List[str]:
        return [str(u) for u in v if u] if isinstance(v, (list, tuple)) else []

    @property
    def is_public(self) -> bool:
        return not self.is_sold and self.is_approved


_FILTER_NUMBERS = ("min_price", "max_price", "min_year", "max_year", "min_mileage", "max_mileage")
_FILTER_TEXT = ("brand", "model", "fuel_type", "transmission", "body_type", "color", "location", "search")


class FilterSet(BaseModel):
    """What the user is looking for, every field optional

    On the wire the keys are camelCase (maxPrice, fuelType) like the front end uses
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    brand: Optional[str] = None
    model: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    body_type: Optional[str] = None
    color: Optional[str] = None
    location: Optional[str] = None
    min_mileage: Optional[int] = None
    max_mileage: Optional[int] = None
    search: Optional[str] = None

    @field_validator(*_FILTER_NUMBERS, mode="before")
    @classmethod
    def _numbers(cls, v: Any) -> Optional[int]:
        return _whole_number(v)

    @field_validator(*_FILTER_TEXT, mode="before")
    @classmethod
    def _texts(cls, v: Any) -> Optional[str]:
        return _text(v)

    def constraints(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def is_empty(self) -> bool:
        return not self.constraints()


class ChatTurn(BaseModel):
    # One message of the conversation, kept by the caller only
    role: Literal["user", "assistant"]
    content: str
    cars: Optional[List[Listing]] = None

    def display_cars(self) -> List[Listing]:
        return list(self.cars or [])[:DISPLAY_LIMIT]

    def hidden_count(self) -> int:
        return max(len(self.cars or []) - DISPLAY_LIMIT, 0)


class ListingDraft(BaseModel):
    """A listing read off a third party page, not saved until the user confirms it"""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    price: Optional[int] = None
    mileage: Optional[int] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    body_type: Optional[str] = None
    color: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    images: List[str] = Field(default_factory=list)

    @field_validator("year", mode="before")
    @classmethod
    def _year(cls, v: Any) -> Optional[int]:
        year = _whole_number(v)
        return year if year is not None and 1000 <= year <= 9999 else None

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v: Any) -> Optional[int]:
        price = _whole_number(v)
        return price if price else None

    @field_validator("mileage", mode="before")
    @classmethod
    def _mileage(cls, v: Any) -> Optional[int]:
        return _whole_number(v)

    @field_validator("title", "brand", "model", "fuel_type", "transmission", "body_type",
                     "color", "location", "description", mode="before")
    @classmethod
    def _texts(cls, v: Any) -> Optional[str]:
        return _text(v)

    @field_validator("images", mode="before")
    @classmethod
    def _images(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        out: List[str] = []
        for u in v:
            if isinstance(u, str) and u.strip().lower().startswith(("http://", "https://")) and u.strip() not in out:
                out.append(u.strip())
        return out

    def missing_fields(self) -> List[str]:
        return [f for f in REQUIRED_DRAFT_FIELDS if getattr(self, f) is None]


class AssistantRequest(BaseModel):
    # What the chat widget sends with each message
    message: str
    history: List[ChatTurn] = Field(default_factory=list)


class AssistantResponse(BaseModel):
    response: str
    cars: List[Listing]
    filters: Optional[Dict[str, Any]] = None


class ImportRequest(BaseModel):
    url: Optional[str] = None


class ImportResponse(BaseModel):
    success: bool = True
    data: ListingDraft
    source_url: str
    missing_fields: List[str] = Field(default_factory=list)


class ListingsResponse(BaseModel):
    # For endpoints that just return listings without chat
    cars: List[Listing]
