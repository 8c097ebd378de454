from __future__ import annotations

import argparse
from decimal import Decimal
from uuid import uuid4

from services.api.app.db.database import db_session
from services.api.app.db.init_db import init_db
from services.api.app.db.models import Cart, CartItem, Product, User

CATALOG = (
    ("p1", "Classic Biko", "150", "Kakanin", True, "Sweet sticky rice topped with rich latik."),
    (
        "p2",
        "Special Sapin-Sapin",
        "180",
        "Kakanin",
        True,
        "Layered glutinous rice and coconut dessert with vibrant colors.",
    ),
    (
        "p3",
        "Puto Bumbong",
        "120",
        "Kakanin",
        True,
        "Purple yam sticky rice steamed in bamboo tubes, served with butter and muscovado.",
    ),
    (
        "p4",
        "Suman sa Lihiya",
        "90",
        "Suman",
        False,
        "Lye-treated glutinous rice wrapped in banana leaves, paired with sweet coconut caramel.",
    ),
    ("p5", "Suman Moron", "110", "Suman", False, "Chocolate and vanilla stick rice rolls from Leyte."),
    (
        "p6",
        "Kutsinta",
        "80",
        "Kakanin",
        False,
        "Steamed slightly chewy brown rice cake served with freshly grated coconut.",
    ),
    (
        "p7",
        "Party Tray - Biko",
        "850",
        "Party Trays",
        False,
        "A large bilao of our classic biko, perfect for family gatherings.",
    ),
    (
        "p8",
        "Cassava Cake",
        "220",
        "Kakanin",
        True,
        "Baked grated cassava with coconut milk and a creamy cheese custard layer.",
    ),
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed demo storefront data")
    parser.add_argument("--user-id", default="u-1")
    parser.add_argument("--user-email", default="customer@example.com")
    parser.add_argument("--user-name", default="Demo Customer")
    parser.add_argument(
        "--with-cart",
        action="store_true",
        help="Put two Classic Biko and one Kutsinta in the user's cart",
    )
    args = parser.parse_args()

    init_db()

    db = db_session()
    try:
        if db.get(User, args.user_id) is None:
            db.add(User(id=args.user_id, email=args.user_email, display_name=args.user_name))

        for pid, name, price, category, best_seller, description in CATALOG:
            if db.get(Product, pid) is None:
                db.add(
                    Product(
                        id=pid,
                        name=name,
                        price=Decimal(price),
                        category=category,
                        is_best_seller=best_seller,
                        description=description,
                    )
                )

        db.flush()

        if args.with_cart:
            cart = db.query(Cart).filter(Cart.user_id == args.user_id).first()
            if cart is None:
                cart = Cart(id=uuid4().hex, user_id=args.user_id)
                db.add(cart)
                db.flush()

            existing_items = db.query(CartItem).filter(CartItem.cart_id == cart.id).count()
            if existing_items == 0:
                for pid, qty in (("p1", 2), ("p6", 1)):
                    db.add(CartItem(id=uuid4().hex, cart_id=cart.id, product_id=pid, quantity=qty))

        db.commit()
        print(f"Seeded user={args.user_id} products={len(CATALOG)}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
