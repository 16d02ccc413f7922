import json
import logging
from cloudshop.extensions import db
from cloudshop.models.product import Product
from cloudshop.models.variant import ProductVariant
from cloudshop.models.audit_log import AuditLog
from cloudshop.services.variant_templates import round_half_away, to_number
from cloudshop.services.variant_wizard import VariantCreateError

logger = logging.getLogger(__name__)

SYNC_DIRECTIONS = {"options-to-variants", "variants-to-options"}


class VariantError(ValueError):
    """A variant request that can't be carried out; maps onto an HTTP status."""

    status_code = 400

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ProductNotFound(VariantError):
    status_code = 404


class VariantNotFound(VariantError):
    status_code = 404


class DuplicateVariant(VariantError):
    status_code = 409


def _is_blank(text):
    return not isinstance(text, str) or not text.strip()


def validate_variant_data(data):
    """Check a single variant record before it is written."""
    if not isinstance(data, dict):
        return {"is_valid": False, "errors": ["Variant data must be an object"]}

    errors = []

    if _is_blank(data.get("product_id")):
        errors.append("Product ID is required")
    if _is_blank(data.get("variant_name")):
        errors.append("Variant name is required")
    if _is_blank(data.get("variant_value")):
        errors.append("Variant value is required")

    price = data.get("price_adjustment")
    if price is not None and to_number(price) is None:
        errors.append("Price adjustment must be a valid number")

    stock = data.get("stock_quantity")
    if stock is not None:
        stock_number = to_number(stock)
        if stock_number is None or stock_number < 0:
            errors.append("Stock quantity must be a non-negative number")

    return {"is_valid": not errors, "errors": errors}


def _whole(value):
    number = to_number(value)
    return round_half_away(number) if number is not None else 0


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_product(product_id):
    return db.session.get(Product, product_id)


def get_product_variants(product_id, include_inactive=True):
    """Variants of one product ordered by group then value.

    Storefront callers pass include_inactive=False.
    """
    query = ProductVariant.query.filter_by(product_id=product_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(
        ProductVariant.variant_name, ProductVariant.variant_value
    ).all()


def group_variants_by_name(variants):
    """Group variants by variant_name, keeping first-seen group order."""
    groups = {}
    for variant in variants:
        groups.setdefault(variant.variant_name, []).append(variant)
    return [{"name": name, "variants": items} for name, items in groups.items()]


def variants_to_options(variants):
    """Collapse variant rows into the option-group shape stored on products."""
    return [
        {
            "name": group["name"],
            "values": [
                {
                    "label": v.variant_value,
                    "value": "_".join(v.variant_value.lower().split()),
                    "price": v.price_adjustment,
                    "stock": v.stock_quantity,
                    "active": v.is_active,
                }
                for v in group["variants"]
            ],
        }
        for group in group_variants_by_name(variants)
    ]


def options_to_variants(product_id, options):
    """Expand option groups into variant records ready to insert."""
    records = []
    for option in options:
        for value in option.get("values", []):
            records.append(
                {
                    "product_id": product_id,
                    "variant_name": option["name"],
                    "variant_value": value["label"],
                    "price_adjustment": value.get("price") or 0,
                    "stock_quantity": value.get("stock") or 0,
                    "is_active": value.get("active") is not False,
                }
            )
    return records


def calculate_final_price(base_price, selected, variants):
    """Base price plus the adjustment of each selected, active variant.

    selected maps variant_name -> variant_value, e.g. {"Size": "Size L"}.
    """
    total = base_price
    for name, value in selected.items():
        for variant in variants:
            if (
                variant.variant_name == name
                and variant.variant_value == value
                and variant.is_active
            ):
                total += variant.price_adjustment
                break
    return total


def get_variant_stats():
    """Variant counts for the stats command."""
    rows = (
        db.session.query(ProductVariant.is_active, db.func.count(ProductVariant.id))
        .group_by(ProductVariant.is_active)
        .all()
    )
    counts = {bool(active): count for active, count in rows}
    products = db.session.query(
        db.func.count(db.distinct(ProductVariant.product_id))
    ).scalar()
    return {
        "products": products or 0,
        "active": counts.get(True, 0),
        "inactive": counts.get(False, 0),
    }


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def _sync_options(product):
    """Rewrite product.options from its variant rows (caller commits)."""
    db.session.flush()
    product.options = variants_to_options(
        get_product_variants(product.id, include_inactive=True)
    )
    return product.options


def create_variant(data, actor):
    """Validate and insert one variant, then refresh the product's options."""
    validation = validate_variant_data(data)
    if not validation["is_valid"]:
        raise VariantError("Validation failed", validation["errors"])

    product = get_product(data["product_id"])
    if not product:
        raise ProductNotFound("Product not found")

    variant_name = data["variant_name"].strip()
    variant_value = data["variant_value"].strip()
    duplicate = ProductVariant.query.filter_by(
        product_id=product.id,
        variant_name=variant_name,
        variant_value=variant_value,
    ).first()
    if duplicate:
        raise DuplicateVariant("Variant already exists")

    variant = ProductVariant(
        product_id=product.id,
        variant_name=variant_name,
        variant_value=variant_value,
        price_adjustment=_whole(data.get("price_adjustment")),
        stock_quantity=_whole(data.get("stock_quantity")),
        is_active=data.get("is_active") is not False,
    )
    db.session.add(variant)
    db.session.flush()

    db.session.add(
        AuditLog(
            actor=actor,
            action="CREATE_VARIANT",
            product_id=product.id,
            payload={
                "variant_id": variant.id,
                "variant_name": variant_name,
                "variant_value": variant_value,
            },
        )
    )
    _sync_options(product)
    db.session.commit()

    logger.info(
        "Created variant %s: %s for product %s", variant_name, variant_value, product.id
    )
    return variant


def update_variant(variant_id, data, actor):
    """Update price, stock and active flag; absent fields are left alone."""
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        raise VariantNotFound("Variant not found")

    errors = []
    changes = {}
    if data.get("price_adjustment") is not None:
        if to_number(data["price_adjustment"]) is None:
            errors.append("Price adjustment must be a valid number")
        else:
            changes["price_adjustment"] = _whole(data["price_adjustment"])
    if data.get("stock_quantity") is not None:
        stock = to_number(data["stock_quantity"])
        if stock is None or stock < 0:
            errors.append("Stock quantity must be a non-negative number")
        else:
            changes["stock_quantity"] = _whole(data["stock_quantity"])
    if data.get("is_active") is not None:
        changes["is_active"] = bool(data["is_active"])
    if errors:
        raise VariantError("Validation failed", errors)

    old = {field: getattr(variant, field) for field in changes}
    for field, value in changes.items():
        setattr(variant, field, value)

    db.session.add(
        AuditLog(
            actor=actor,
            action="UPDATE_VARIANT",
            product_id=variant.product_id,
            payload={"variant_id": variant.id, "old": old, "new": changes},
        )
    )
    _sync_options(variant.product)
    db.session.commit()
    return variant


def delete_variant(variant_id, actor):
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        raise VariantNotFound("Variant not found")

    product = variant.product
    db.session.add(
        AuditLog(
            actor=actor,
            action="DELETE_VARIANT",
            product_id=product.id,
            payload={
                "variant_id": variant.id,
                "variant_name": variant.variant_name,
                "variant_value": variant.variant_value,
            },
        )
    )
    db.session.delete(variant)
    _sync_options(product)
    db.session.commit()
    return True


def sync_variants_to_product_options(product_id, actor="system"):
    """Rebuild products.options from every variant row, inactive included."""
    product = get_product(product_id)
    if not product:
        raise ProductNotFound("Product not found")

    options = _sync_options(product)
    db.session.add(
        AuditLog(
            actor=actor,
            action="SYNC_VARIANTS_TO_OPTIONS",
            product_id=product.id,
            payload={"groups": len(options)},
        )
    )
    db.session.commit()
    return f"Synced {len(options)} option groups"


def sync_product_options_to_variants(product_id, actor="system"):
    """Replace the product's variant rows with what products.options says."""
    product = get_product(product_id)
    if not product:
        raise ProductNotFound("Product not found")
    if not product.options:
        return "No options to sync"

    options = product.options
    if isinstance(options, str):
        try:
            options = json.loads(options)
        except json.JSONDecodeError:
            raise VariantError("Invalid options format")

    ProductVariant.query.filter_by(product_id=product.id).delete()
    records = options_to_variants(product.id, options)
    for record in records:
        db.session.add(
            ProductVariant(
                product_id=record["product_id"],
                variant_name=record["variant_name"],
                variant_value=record["variant_value"],
                price_adjustment=_whole(record["price_adjustment"]),
                stock_quantity=_whole(record["stock_quantity"]),
                is_active=record["is_active"],
            )
        )

    db.session.add(
        AuditLog(
            actor=actor,
            action="SYNC_OPTIONS_TO_VARIANTS",
            product_id=product.id,
            payload={"variants": len(records)},
        )
    )
    db.session.commit()
    return f"Synced {len(records)} variants"


def sync_product(product_id, direction, actor="system"):
    if direction not in SYNC_DIRECTIONS:
        raise VariantError(
            'Direction must be either "options-to-variants" or "variants-to-options"'
        )
    if direction == "options-to-variants":
        return sync_product_options_to_variants(product_id, actor)
    return sync_variants_to_product_options(product_id, actor)


def create_variant_record(record, actor="wizard"):
    """In-process persistence step for the variant wizard."""
    try:
        return create_variant(record, actor)
    except VariantError as e:
        detail = "; ".join(e.errors)
        raise VariantCreateError(f"{e.message}: {detail}" if detail else e.message)
