"""Variant templates: predefined option sets and the pure helpers around them.

Templates and their values are plain dicts:

    {"id": "size-standard", "name": "...", "description": "...",
     "category": "size", "icon": "📏", "default_values": [
         {"label": "Size S", "value": "s", "price_adjustment": 0,
          "stock_quantity": 50, "order": 1},
     ]}
"""
import copy
import math
import re
import time
from collections.abc import Mapping
from decimal import Decimal, ROUND_HALF_UP

CATEGORIES = {"size", "color", "topping", "temperature", "custom"}

BULK_STRATEGIES = {"flat", "percentage"}


def _value(label, value, price_adjustment, stock_quantity, order):
    return {
        "label": label,
        "value": value,
        "price_adjustment": price_adjustment,
        "stock_quantity": stock_quantity,
        "order": order,
    }


PREDEFINED_TEMPLATES = (
    # Size
    {
        "id": "size-standard",
        "name": "Kích cỡ tiêu chuẩn",
        "description": "S, M, L, XL với mức giá tăng dần",
        "category": "size",
        "icon": "📏",
        "default_values": [
            _value("Size S", "s", 0, 50, 1),
            _value("Size M", "m", 5000, 100, 2),
            _value("Size L", "l", 10000, 75, 3),
            _value("Size XL", "xl", 15000, 25, 4),
        ],
    },
    {
        "id": "size-drink",
        "name": "Size đồ uống",
        "description": "Nhỏ, Vừa, Lớn cho đồ uống",
        "category": "size",
        "icon": "🥤",
        "default_values": [
            _value("Nhỏ (300ml)", "small", 0, 100, 1),
            _value("Vừa (500ml)", "medium", 8000, 100, 2),
            _value("Lớn (700ml)", "large", 15000, 50, 3),
        ],
    },
    # Color
    {
        "id": "color-basic",
        "name": "Màu cơ bản",
        "description": "Đỏ, Xanh, Vàng, Trắng, Đen",
        "category": "color",
        "icon": "🎨",
        "default_values": [
            _value("Đỏ", "red", 0, 30, 1),
            _value("Xanh dương", "blue", 0, 30, 2),
            _value("Vàng", "yellow", 0, 20, 3),
            _value("Trắng", "white", 0, 50, 4),
            _value("Đen", "black", 0, 40, 5),
        ],
    },
    {
        "id": "color-premium",
        "name": "Màu cao cấp",
        "description": "Vàng gold, bạc silver với giá tăng",
        "category": "color",
        "icon": "✨",
        "default_values": [
            _value("Bạc Silver", "silver", 20000, 15, 1),
            _value("Vàng Gold", "gold", 50000, 10, 2),
            _value("Hồng Rose Gold", "rose_gold", 35000, 12, 3),
        ],
    },
    # Topping
    {
        "id": "topping-food",
        "name": "Topping món ăn",
        "description": "Thêm trứng, phô mai, thịt, rau",
        "category": "topping",
        "icon": "🍳",
        "default_values": [
            _value("Thêm trứng", "egg", 8000, 100, 1),
            _value("Thêm phô mai", "cheese", 12000, 50, 2),
            _value("Thêm thịt", "meat", 20000, 30, 3),
            _value("Thêm rau", "vegetables", 5000, 80, 4),
        ],
    },
    {
        "id": "topping-drink",
        "name": "Topping đồ uống",
        "description": "Trân châu, thạch, kem, đường",
        "category": "topping",
        "icon": "🧋",
        "default_values": [
            _value("Trân châu đen", "black_pearl", 8000, 100, 1),
            _value("Trân châu trắng", "white_pearl", 8000, 100, 2),
            _value("Thạch dừa", "coconut_jelly", 6000, 80, 3),
            _value("Kem cheese", "cream_cheese", 15000, 40, 4),
            _value("Đường ít", "less_sugar", 0, 999, 5),
            _value("Không đường", "no_sugar", 0, 999, 6),
        ],
    },
    # Temperature
    {
        "id": "temperature-drinks",
        "name": "Nhiệt độ đồ uống",
        "description": "Nóng, Lạnh, Thường",
        "category": "temperature",
        "icon": "🌡️",
        "default_values": [
            _value("Nóng", "hot", 0, 999, 1),
            _value("Lạnh", "cold", 3000, 999, 2),
            _value("Thường", "normal", 0, 999, 3),
        ],
    },
)


class TemplateCatalog:
    """Read-only registry of variant templates.

    Lookups hand out deep copies so callers can edit the result freely.
    """

    def __init__(self, templates=PREDEFINED_TEMPLATES):
        seen = set()
        for template in templates:
            if template["id"] in seen:
                raise ValueError(f"Duplicate template id: {template['id']}")
            seen.add(template["id"])
            if template["category"] not in CATEGORIES:
                raise ValueError(
                    f"Template {template['id']} has unknown category "
                    f"{template['category']!r}"
                )
            values = template.get("default_values") or []
            if not values:
                raise ValueError(f"Template {template['id']} has no values")
            orders = [v["order"] for v in values]
            if len(set(orders)) != len(orders):
                raise ValueError(f"Template {template['id']} has duplicate orders")
        self._templates = tuple(copy.deepcopy(t) for t in templates)

    def __len__(self):
        return len(self._templates)

    def __iter__(self):
        return iter(self.all())

    def all(self):
        return [copy.deepcopy(t) for t in self._templates]

    def get_template_by_id(self, template_id):
        for template in self._templates:
            if template["id"] == template_id:
                return copy.deepcopy(template)
        return None

    def get_templates_by_category(self, category):
        """Templates in one category, in declaration order."""
        if category not in CATEGORIES:
            raise ValueError(f"Unknown template category: {category!r}")
        return [
            copy.deepcopy(t) for t in self._templates if t["category"] == category
        ]


def create_custom_template(name, description, values):
    """Build an ad-hoc template from user-entered values, numbering them 1..n."""
    return {
        "id": f"custom-{int(time.time() * 1000)}",
        "name": name,
        "description": description,
        "category": "custom",
        "icon": "🎯",
        "default_values": [
            {**value, "order": index + 1} for index, value in enumerate(values)
        ],
    }


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------

# Applied in order after lowercasing.
_SLUG_FOLDS = (
    (re.compile("[àáạảãâầấậẩẫăằắặẳẵ]"), "a"),
    (re.compile("[èéẹẻẽêềếệểễ]"), "e"),
    (re.compile("[ìíịỉĩ]"), "i"),
    (re.compile("[òóọỏõôồốộổỗơờớợởỡ]"), "o"),
    (re.compile("[ùúụủũưừứựửữ]"), "u"),
    (re.compile("[ỳýỵỷỹ]"), "y"),
    (re.compile("đ"), "d"),
)
_NON_SLUG = re.compile("[^a-z0-9]")


def slugify_label(label):
    """Turn a display label into a value code: "Size XL" -> "size_xl".

    Leading and trailing underscores are kept.
    """
    slug = label.lower()
    for pattern, replacement in _SLUG_FOLDS:
        slug = pattern.sub(replacement, slug)
    return _NON_SLUG.sub("_", slug)


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def to_number(value):
    """Coerce form input to a finite float, or None when it can't be.

    A blank string counts as 0, like an emptied number input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def round_half_away(number):
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    if not isinstance(number, Decimal):
        number = Decimal(str(number))
    return int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _is_blank(text):
    return not isinstance(text, str) or not text.strip()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_template(template):
    """Collect every structural problem with a template-like mapping.

    Returns {"is_valid": bool, "errors": [str]}; positions are 1-based.
    Malformed input is reported, never raised.
    """
    if not isinstance(template, Mapping):
        return {
            "is_valid": False,
            "errors": [
                "Template name is required",
                "Template must have at least one value",
            ],
        }

    errors = []

    if _is_blank(template.get("name")):
        errors.append("Template name is required")

    values = template.get("default_values")
    if not values:
        errors.append("Template must have at least one value")
        values = []
    elif not isinstance(values, (list, tuple)):
        errors.append("Template values must be a list")
        values = []

    for index, value in enumerate(values, start=1):
        if not isinstance(value, Mapping):
            errors.append(f"Value {index} is malformed")
            continue
        if _is_blank(value.get("label")):
            errors.append(f"Value {index} requires a label")
        if _is_blank(value.get("value")):
            errors.append(f"Value {index} requires a value code")
        price = value.get("price_adjustment")
        if price is not None and to_number(price) is None:
            errors.append(f"Value {index} has an invalid price adjustment")
        stock = value.get("stock_quantity")
        if stock is not None:
            stock_number = to_number(stock)
            if stock_number is None or stock_number < 0:
                errors.append(f"Value {index} has an invalid stock quantity")

    return {"is_valid": not errors, "errors": errors}


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

def values_to_variants(values, product_id, variant_name):
    """Map template values to persistable variant records, one per value.

    variant_value carries the display label, not the value code.
    """
    return [
        {
            "product_id": product_id,
            "variant_name": variant_name,
            "variant_value": value["label"],
            "price_adjustment": value["price_adjustment"],
            "stock_quantity": value["stock_quantity"],
            "is_active": True,
        }
        for value in values
    ]


def template_to_variants(template, product_id, variant_name):
    return values_to_variants(template["default_values"], product_id, variant_name)


# ---------------------------------------------------------------------------
# Bulk pricing
# ---------------------------------------------------------------------------

def apply_bulk_pricing(values, strategy, amount):
    """Recompute price adjustments for a whole value list.

    "flat": the value at index i gets amount * i, replacing what was there
    (flat 0 resets every adjustment). "percentage": each adjustment is scaled
    by (1 + amount / 100) and rounded half away from zero, so zero stays zero.
    Adjustments that are not numbers are left as they are for step gating
    to report.
    """
    if strategy not in BULK_STRATEGIES:
        raise ValueError(f"Unknown bulk pricing strategy: {strategy!r}")
    number = to_number(amount)
    if number is None:
        raise ValueError(f"Bulk pricing amount must be a number: {amount!r}")

    factor = 1 + Decimal(str(number)) / 100
    updated = []
    for index, value in enumerate(values):
        price = value["price_adjustment"]
        if strategy == "flat":
            step = Decimal(str(number)) * index
            price = int(step) if step == step.to_integral_value() else float(step)
        else:
            current = to_number(price)
            if current is not None:
                price = round_half_away(Decimal(str(current)) * factor)
        updated.append({**value, "price_adjustment": price})
    return updated
