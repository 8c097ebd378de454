from __future__ import annotations

from fastapi import APIRouter, Depends
from services.api.app.db.deps import get_db
from services.api.app.models.catalog import ProductOut
from services.api.app.services.pricing import coerce_price
from services.api.app.services.stores import CatalogStore
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/v1/products", response_model=list[ProductOut])
def list_products(db: Session = Depends(get_db)) -> list[ProductOut]:
    return [
        ProductOut(
            id=p.id,
            name=p.name,
            price=float(coerce_price(p.price)),
            description=p.description,
            category=p.category,
            is_best_seller=p.is_best_seller,
        )
        for p in CatalogStore(db).list_products()
    ]
