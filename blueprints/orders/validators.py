# blueprints/orders/validators.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence

from models import IngredientCategory
from .catalog import IngredientCatalog


@dataclass
class CheckError:
    code: str
    details: dict


def validate_ingredient_selection(ids: Sequence[int], catalog: IngredientCatalog) -> list[CheckError]:
    """Состав бутерброда: непусто, без дублей, всё есть и доступно, ровно один хлеб."""
    if not ids:
        return [CheckError(code="INGREDIENTS_REQUIRED", details={})]

    errors: list[CheckError] = []
    dupes = sorted({i for i in ids if list(ids).count(i) > 1})
    if dupes:
        errors.append(CheckError(code="DUPLICATE_INGREDIENTS", details={"ids": dupes}))

    items = catalog.find_by_ids(list(dict.fromkeys(ids)))
    found = {it.id for it in items}
    unknown = [i for i in dict.fromkeys(ids) if i not in found]
    if unknown:
        errors.append(CheckError(code="UNKNOWN_INGREDIENTS", details={"ids": unknown}))

    unavailable = [it.id for it in items if not it.available]
    if unavailable:
        errors.append(CheckError(code="UNAVAILABLE_INGREDIENTS", details={"ids": unavailable}))

    breads = [it.id for it in items if it.category == IngredientCategory.BREAD.value]
    if len(breads) != 1:
        errors.append(CheckError(code="EXACTLY_ONE_BREAD", details={"bread_ids": breads}))
    return errors
