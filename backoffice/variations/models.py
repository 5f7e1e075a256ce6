# backoffice/variations/models.py
# --------------------------------------------------------------------------------------
# Records shared by the matrix engine, the edit state machine and the API client.
# Reference data (colors, attributes) is immutable; matrix rows are replaced, never
# mutated in place, so an unchanged row keeps its identity across reconciliations.
# --------------------------------------------------------------------------------------
from __future__ import annotations

from typing import Any, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# A selected attribute value is normally a variant id; free-form attribute values are
# accepted too. Values are compared by their key form, so 1 and "1" are the same value.
Value = Union[int, str]


def value_token(value: Value) -> str:
    return str(value).strip()


def make_key(color_id: int, value: Value) -> str:
    return f"{color_id}__{value_token(value)}"


def unique_values(values: Iterable[Value]) -> List[Value]:
    """First occurrence of each value, compared by value_token."""
    seen = set()
    out: List[Value] = []
    for v in values:
        t = value_token(v)
        if t not in seen:
            seen.add(t)
            out.append(v)
    return out


class ColorOption(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str
    hex: Optional[str] = None
    priority: int = 0
    status: bool = True


class AttributeValue(BaseModel):
    """One variant (value) in an attribute's domain, e.g. Size = "M"."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    attribute_id: int
    name: str
    priority: int = 0
    status: bool = True


class Attribute(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str
    priority: int = 0
    status: bool = True
    variants: List[AttributeValue] = Field(default_factory=list)

    def value_domain(self) -> List[int]:
        return [v.id for v in self.variants if v.status]


class DefaultPricing(BaseModel):
    buying_price: float = 0
    selling_price: float = 0
    discount: float = 0


class MatrixRow(BaseModel):
    """Draft variation cell in the color × value grid (not necessarily persisted)."""
    model_config = ConfigDict(frozen=True)

    key: str
    color_id: int
    variant_id: Value
    buying_price: float = 0
    selling_price: float = 0
    discount: float = 0
    stock: int = 0
    sku: str = ""
    active: bool = True


class PersistedVariation(BaseModel):
    """A variation row as the backend returns it."""
    model_config = ConfigDict(extra="allow")

    id: int
    product_id: Optional[int] = None
    color_id: int = 0
    variant_id: int = 0
    buying_price: float = 0
    selling_price: float = 0
    discount: float = 0
    stock: int = 0
    sku: str = ""
    status: bool = True

    @model_validator(mode="before")
    @classmethod
    def _flatten_nested(cls, data: Any) -> Any:
        # GET /product/:id nests {color: {...}, variant: {...}} instead of *_id
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for nested, flat in (("color", "color_id"), ("variant", "variant_id")):
            obj = data.get(nested)
            if flat not in data and isinstance(obj, dict) and obj.get("id") is not None:
                data[flat] = obj["id"]
        return data

    @field_validator("buying_price", "selling_price", "discount", mode="before")
    @classmethod
    def _none_price(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("stock", mode="before")
    @classmethod
    def _stock_int(cls, v: Any) -> Any:
        if v is None:
            return 0
        if isinstance(v, float):
            return int(v)
        return v

    @field_validator("sku", mode="before")
    @classmethod
    def _sku_str(cls, v: Any) -> Any:
        return "" if v is None else str(v)


class RowEditDraft(BaseModel):
    """Editable copy of a persisted row's business fields (also the "add" form)."""

    color_id: int = 0
    variant_id: int = 0
    buying_price: float = 0
    selling_price: float = 0
    discount: float = 0
    stock: int = 0
    sku: str = ""

    @classmethod
    def from_variation(cls, v: PersistedVariation) -> "RowEditDraft":
        return cls(
            color_id=v.color_id,
            variant_id=v.variant_id,
            buying_price=v.buying_price,
            selling_price=v.selling_price,
            discount=v.discount,
            stock=v.stock,
            sku=v.sku,
        )

    @classmethod
    def from_defaults(cls, defaults: DefaultPricing | None = None) -> "RowEditDraft":
        d = defaults or DefaultPricing()
        return cls(buying_price=d.buying_price, selling_price=d.selling_price, discount=d.discount)


class VariationPayload(BaseModel):
    """Body of POST /product/variation and PUT /product/variation/:id."""

    product_id: int
    color_id: int
    variant_id: int
    buying_price: float = 0
    selling_price: float
    discount: float = 0
    stock: int = 0
    sku: str = ""

    @classmethod
    def from_draft(cls, product_id: int, draft: RowEditDraft) -> "VariationPayload":
        return cls(
            product_id=product_id,
            color_id=draft.color_id,
            variant_id=draft.variant_id,
            buying_price=max(0, draft.buying_price),
            selling_price=draft.selling_price,
            discount=max(0, draft.discount),
            stock=max(0, draft.stock),
            sku=draft.sku.strip(),
        )


class VariationSummary(BaseModel):
    total_stock: int = 0
    min_selling_price: float = 0
    max_discount: float = 0
    low_stock: bool = True
    variant_count: int = 0
    sale_price: float = 0
    first_sku: str = "-"
    in_stock_count: int = 0
    out_of_stock_count: int = 0
