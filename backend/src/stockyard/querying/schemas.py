"""Pydantic schemas for list-query parameters and results"""

from dataclasses import dataclass, field
from math import ceil
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError


class QueryParams(BaseModel):
    """Raw list parameters of a request.

    ``fields`` accepts a comma-separated string ("order_referral_id,observation")
    or a list of names. Out-of-range page/limit values are rejected, never
    clamped.
    """
    term: Optional[str] = Field(None, description="Free-text search term")
    search_fields: List[str] = Field(default_factory=list, alias="fields", description="Fields searched by term")
    page: Optional[int] = Field(None, ge=1, description="1-based page number")
    limit: Optional[int] = Field(None, gt=0, description="Rows per page")
    sort: Optional[str] = Field(None, description="Sort field")
    order: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction")

    class Config:
        populate_by_name = True
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "term": "99",
                "fields": "order_referral_id,observation",
                "page": 2,
                "limit": 10,
                "sort": "created_at",
                "order": "desc"
            }
        }

    @field_validator("search_fields", mode="before")
    @classmethod
    def split_fields(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        names: List[str] = []
        for item in value:
            names.extend(part.strip() for part in str(item).split(",") if part.strip())
        return names

    @field_validator("term", "sort", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("order", mode="before")
    @classmethod
    def lower_order(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @property
    def paginated(self) -> bool:
        return self.page is not None and self.limit is not None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit if self.paginated else 0

    @classmethod
    def parse(cls, raw: Mapping[str, Any], max_limit: Optional[int] = None) -> "QueryParams":
        """Validate raw request parameters.

        Raises:
            ValidationError: Malformed page, limit or order, or limit above max_limit
        """
        try:
            params = cls.model_validate(dict(raw))
        except PydanticValidationError as exc:
            error = exc.errors()[0]
            loc = error.get("loc") or ()
            name = str(loc[0]) if loc else None
            if name == "search_fields":
                name = "fields"
            raise ValidationError(
                f"Invalid query parameter {name}: {error['msg']}", field=name
            ) from exc

        if max_limit is not None and params.limit is not None and params.limit > max_limit:
            raise ValidationError(
                f"limit cannot exceed {max_limit}", field="limit", limit=params.limit
            )
        return params


class PageInfo(BaseModel):
    """Pagination metadata of one result page"""
    total: int = Field(..., ge=0, description="Rows matching the query")
    page: int = Field(..., ge=1, description="Current page number")
    limit: int = Field(..., gt=0, description="Rows per page")
    total_pages: int = Field(..., ge=0, alias="totalPages", description="ceil(total / limit)")

    class Config:
        populate_by_name = True

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PageInfo":
        return cls(total=total, page=page, limit=limit, total_pages=ceil(total / limit))


@dataclass
class QueryResult:
    """Rows of a list query plus its total count."""
    data: List[Any] = field(default_factory=list)
    count: int = 0
    pagination: Optional[PageInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "count": self.count,
            "pagination": self.pagination.model_dump(by_alias=True) if self.pagination else None,
        }
