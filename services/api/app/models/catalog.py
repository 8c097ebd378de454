from __future__ import annotations

from pydantic import BaseModel


class ProductOut(BaseModel):
    id: str
    name: str
    price: float
    description: str = ""
    category: str = ""
    is_best_seller: bool = False
