from cloudshop.models.product import Product
from cloudshop.models.variant import ProductVariant
from cloudshop.models.audit_log import AuditLog

__all__ = ["Product", "ProductVariant", "AuditLog"]
