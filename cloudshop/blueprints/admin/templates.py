"""Read-only variant template endpoints and projection preview."""
from flask import current_app, jsonify, request
from cloudshop.blueprints.admin import admin_bp, json_object
from cloudshop.services.variant_service import VariantError
from cloudshop.services.variant_templates import (
    CATEGORIES,
    template_to_variants,
    validate_template,
)


def _catalog():
    return current_app.extensions["variant_templates"]


@admin_bp.route("/variant-templates", methods=["GET"])
def list_templates():
    category = request.args.get("category")
    if category:
        if category not in CATEGORIES:
            raise VariantError(f"Unknown template category: {category}")
        templates = _catalog().get_templates_by_category(category)
    else:
        templates = _catalog().all()
    return jsonify(success=True, data=templates, total=len(templates))


@admin_bp.route("/variant-templates/<template_id>", methods=["GET"])
def get_template(template_id):
    template = _catalog().get_template_by_id(template_id)
    if template is None:
        return jsonify(success=False, message="Template not found"), 404
    return jsonify(success=True, data=template)


@admin_bp.route("/variant-templates/validate", methods=["POST"])
def validate():
    result = validate_template(request.get_json(silent=True) or {})
    return jsonify(success=True, data=result)


@admin_bp.route("/variant-templates/<template_id>/preview", methods=["POST"])
def preview(template_id):
    """Variant records the template would create; nothing is written."""
    template = _catalog().get_template_by_id(template_id)
    if template is None:
        return jsonify(success=False, message="Template not found"), 404

    payload = json_object()
    product_id = payload.get("product_id")
    if not isinstance(product_id, str) or not product_id.strip():
        raise VariantError("Product ID is required")
    variant_name = payload.get("variant_name") or template["name"]
    if not isinstance(variant_name, str):
        raise VariantError("Variant name must be a string")
    variant_name = variant_name.strip() or template["name"]

    records = template_to_variants(template, product_id, variant_name)
    return jsonify(success=True, data=records, total=len(records))
