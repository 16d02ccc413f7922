"""Variant CRUD and option sync endpoints."""
import logging
from flask import jsonify, request
from rq import Retry
from cloudshop.blueprints.admin import admin_bp, current_actor, json_object
from cloudshop import extensions
from cloudshop.services import variant_service
from cloudshop.services.variant_service import VariantError, ProductNotFound

logger = logging.getLogger(__name__)


@admin_bp.errorhandler(VariantError)
def variant_error(e):
    body = {"success": False, "message": e.message}
    if e.errors:
        body["errors"] = e.errors
    return jsonify(body), e.status_code


@admin_bp.route("/products/<product_id>/variants", methods=["GET"])
def list_variants(product_id):
    product = variant_service.get_product(product_id)
    if not product:
        raise ProductNotFound("Product not found")

    active_only = request.args.get("active_only", "0") in ("1", "true")
    variants = variant_service.get_product_variants(
        product_id, include_inactive=not active_only
    )
    return jsonify(
        success=True,
        data={
            "product": product.to_dict(),
            "variants": [v.to_dict() for v in variants],
            "total": len(variants),
        },
    )


@admin_bp.route("/products/<product_id>/options", methods=["GET"])
def list_options(product_id):
    """Variants in option-group form, as the storefront reads them."""
    product = variant_service.get_product(product_id)
    if not product:
        raise ProductNotFound("Product not found")
    variants = variant_service.get_product_variants(product_id, include_inactive=False)
    return jsonify(success=True, data=variant_service.variants_to_options(variants))


@admin_bp.route("/products/variants", methods=["POST"])
def create_variant():
    variant = variant_service.create_variant(json_object(), actor=current_actor())
    return (
        jsonify(
            success=True,
            message="Variant created successfully",
            data={"variant_id": variant.id},
        ),
        201,
    )


@admin_bp.route("/products/variants/<variant_id>", methods=["PUT"])
def update_variant(variant_id):
    variant = variant_service.update_variant(
        variant_id, json_object(), actor=current_actor()
    )
    return jsonify(
        success=True, message="Variant updated successfully", data=variant.to_dict()
    )


@admin_bp.route("/products/variants/<variant_id>", methods=["DELETE"])
def delete_variant(variant_id):
    variant_service.delete_variant(variant_id, actor=current_actor())
    return jsonify(success=True, message="Variant deleted successfully")


@admin_bp.route("/products/<product_id>/sync-variants", methods=["POST"])
def sync_variants(product_id):
    """Sync between product_variants rows and products.options.

    Queued on rq when Redis is available, otherwise run in the request.
    """
    direction = json_object().get("direction")
    if direction not in variant_service.SYNC_DIRECTIONS:
        raise VariantError(
            'Direction must be either "options-to-variants" or "variants-to-options"'
        )
    if not variant_service.get_product(product_id):
        raise ProductNotFound("Product not found")

    job = extensions.task_queue.enqueue(
        "cloudshop.workers.variant_sync.sync_product_variants",
        product_id=product_id,
        direction=direction,
        actor=current_actor(),
        job_id=f"variant_sync_{product_id}_{direction}",
        retry=Retry(max=3, interval=[30, 120, 300]),
    )
    if job is not None:
        return jsonify(success=True, message="Sync queued", direction=direction), 202

    message = variant_service.sync_product(product_id, direction, current_actor())
    return jsonify(success=True, message=message, direction=direction)
