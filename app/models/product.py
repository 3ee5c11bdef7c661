# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    `slug` carries the unique index that is the final authority on slug
    uniqueness; the service pre-checks but still has to handle a conflict.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    title: str = Field(
        max_length=200,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str = Field(default="")

    price: float = Field(
        ge=0,
        description="Selling price (INR)",
    )

    mrp: float = Field(
        default=0,
        ge=0,
        description="List price shown struck through",
    )

    sku: str = Field(default="", max_length=64, index=True)
    brand: str = Field(default="", max_length=100)
    category: str = Field(default="", max_length=100, index=True)

    stock: int = Field(
        default=0,
        ge=0,
        description="Units currently in stock",
    )

    published: bool = Field(
        default=False,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    deleted: bool = Field(
        default=False,
        index=True,
        description="Soft-delete flag (admin delete without ?hard=true)",
    )

    hero_image_url: str | None = Field(
        default=None,
        description="Thumbnail / main image URL",
    )

    video_url: str = Field(default="")

    # [{"name": "navy blue", "hex": "#000080"}, ...]
    colors: list[dict] = Field(default_factory=list, sa_column=Column(JSON))

    # ["S", "M", "L", "Free Size"]
    sizes: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )


class ProductImage(SQLModel, table=True):
    """
    Ordered gallery images for a product.
    """

    __tablename__ = "product_images"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
        description="FK to products.id",
    )

    image_url: str = Field(
        description="Public URL (Supabase Storage or external)",
    )

    sort_order: int = Field(
        default=0,
        ge=0,
        description="Ordering index within the gallery",
    )
