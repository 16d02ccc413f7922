import uuid
from datetime import datetime, timezone
from cloudshop.extensions import db


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    price = db.Column(db.Integer, nullable=False, default=0)  # in VND
    # Denormalized copy of the variant groups, kept in sync with product_variants
    options = db.Column(db.JSON, default=list)
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

    variants = db.relationship(
        "ProductVariant",
        backref="product",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="ProductVariant.variant_name",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "price": self.price,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<Product {self.id}: {self.name}>"
