from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from pydantic import TypeAdapter, ValidationError

from ..errors import CatalogError
from .models import Product

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
_CATALOG_JSON = _DATA_DIR / "catalog.json"

_products_adapter = TypeAdapter(list[Product])

_catalog: tuple[Product, ...] | None = None


def load_catalog(path: Path) -> tuple[Product, ...]:
    """Read and validate a catalog JSON file (a list of product objects)."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        products = _products_adapter.validate_python(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise CatalogError(f"Cannot load catalog from {path}: {exc}") from exc

    ids = [p.id for p in products]
    duplicates = sorted({pid for pid in ids if ids.count(pid) > 1})
    if duplicates:
        raise CatalogError(f"Duplicate product ids in {path}: {', '.join(duplicates)}")

    return tuple(products)


def get_catalog() -> tuple[Product, ...]:
    """Return the bundled sample catalog, loading it on first call."""
    global _catalog
    if _catalog is None:
        _catalog = load_catalog(_CATALOG_JSON)
    return _catalog


def find_product(catalog: Sequence[Product], product_id: str) -> Product | None:
    for product in catalog:
        if product.id == product_id:
            return product
    return None
