import uuid
from datetime import datetime, timezone
from cloudshop.extensions import db


class ProductVariant(db.Model):
    __tablename__ = "product_variants"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    product_id = db.Column(
        db.String(36),
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_name = db.Column(db.String(100), nullable=False)  # "Size", "Topping"
    variant_value = db.Column(db.String(255), nullable=False)  # "Size L"
    price_adjustment = db.Column(db.Integer, nullable=False, default=0)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "product_id", "variant_name", "variant_value", name="uq_product_variant"
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_name": self.variant_name,
            "variant_value": self.variant_value,
            "price_adjustment": self.price_adjustment,
            "stock_quantity": self.stock_quantity,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<ProductVariant {self.variant_name}: {self.variant_value}>"
