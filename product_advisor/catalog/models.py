from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

SpecValue = float | str


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str
    category: str
    brand: str
    price: float = Field(..., ge=0.0, description="Price in USD")
    features: list[str] = Field(default_factory=list)
    specs: dict[str, SpecValue] = Field(default_factory=dict)
    rating: float = Field(..., ge=0.0, le=5.0)
    thumbnail: str | None = None
    url: str | None = None


def numeric_spec(product: Product, key: str) -> float | None:
    """Return a spec as a number, or ``None`` if it is missing or textual."""
    value = product.specs.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def has_numeric_spec(product: Product, *keys: str) -> bool:
    return any(numeric_spec(product, key) is not None for key in keys)
