#!/usr/bin/env python3
"""Seed sample products and apply variant templates for local development."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cloudshop import create_app
from cloudshop.extensions import db
from cloudshop.models.product import Product
from cloudshop.services import variant_service
from cloudshop.services.variant_templates import template_to_variants

app = create_app()

# (name, price in VND, [(template id, group name)])
SAMPLE_PRODUCTS = [
    ("Trà sữa trân châu", 35000, [
        ("size-drink", "Size"),
        ("topping-drink", "Topping"),
        ("temperature-drinks", "Nhiệt độ"),
    ]),
    ("Cà phê muối", 32000, [
        ("size-drink", "Size"),
        ("temperature-drinks", "Nhiệt độ"),
    ]),
    ("Mì trộn", 45000, [
        ("topping-food", "Topping"),
    ]),
    ("Áo thun CloudShop", 150000, [
        ("size-standard", "Size"),
        ("color-basic", "Màu"),
    ]),
    ("Ốp lưng kim loại", 220000, [
        ("color-premium", "Màu"),
    ]),
]


def seed():
    with app.app_context():
        if Product.query.first():
            print("Products already exist, skipping seed.")
            return

        catalog = app.extensions["variant_templates"]
        for name, price, groups in SAMPLE_PRODUCTS:
            product = Product(name=name, price=price)
            db.session.add(product)
            db.session.commit()

            created = 0
            for template_id, group_name in groups:
                template = catalog.get_template_by_id(template_id)
                for record in template_to_variants(template, product.id, group_name):
                    variant_service.create_variant(record, actor="seed")
                    created += 1

            print(f"  Created {name}: {created} variants")

        print(f"\nSeeded {len(SAMPLE_PRODUCTS)} products.")


if __name__ == "__main__":
    seed()
