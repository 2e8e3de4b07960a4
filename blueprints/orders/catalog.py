# blueprints/orders/catalog.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from extensions import db
from models import Ingredient


@dataclass(frozen=True)
class CatalogItem:
    id: int
    name: str
    category: str
    available: bool


class IngredientCatalog(Protocol):
    def find_by_ids(self, ids: Sequence[int]) -> List[CatalogItem]:
        ...


class SqlIngredientCatalog:
    """Catalog backed by the `ingredients` table; results follow the order of `ids`."""

    def __init__(self, session: Optional[Session] = None):
        self.session = session

    def find_by_ids(self, ids: Sequence[int]) -> List[CatalogItem]:
        if not ids:
            return []
        session = self.session or db.session
        rows = session.execute(select(Ingredient).where(Ingredient.id.in_(list(ids)))).scalars().all()
        by_id = {r.id: r for r in rows}
        return [
            CatalogItem(id=i, name=by_id[i].name, category=by_id[i].category, available=bool(by_id[i].is_available))
            for i in ids if i in by_id
        ]
