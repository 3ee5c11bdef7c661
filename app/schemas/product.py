# app/schemas/product.py
import re
import uuid
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.core.slugs import MAX_SLUG_LENGTH

_HEX = re.compile(r"^#?(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


# ---------------------------------------------------------------------------
# Boundary normalizers
#
# Admin forms and older clients send colors/sizes/images in several shapes:
#   colors: "red, navy" | ["red", "#000080"] | [{"name": .., "hex": ..}]
#           | [{"label": .., "value": ..}] | [{"name": .., "code": ..}]
#   sizes:  "S, M, L" | ["S", "M"]
#   images: ["https://.."] | [{"url": ..}] | [{"src": ..}] | [{"filename": .., "url": ..}]
# ---------------------------------------------------------------------------


def _split_csv(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _normalize_hex(raw: str) -> str:
    raw = raw.strip()
    if not _HEX.match(raw):
        return ""
    return ("#" + raw.lstrip("#")).upper()


def color_key(text: Any) -> str:
    """Case- and whitespace-insensitive form used to store and match color names."""
    return re.sub(r"\s+", " ", str(text or "")).strip().lower()


def normalize_color(entry: Any) -> dict[str, str] | None:
    if isinstance(entry, dict):
        name = str(entry.get("name") or entry.get("label") or "").strip()
        hex_value = str(
            entry.get("hex") or entry.get("code") or entry.get("value") or ""
        ).strip()
        hex_value = _normalize_hex(hex_value)
        if not name and not hex_value:
            return None
        return {"name": color_key(name or hex_value), "hex": hex_value}

    if entry is None:
        return None
    text = str(entry).strip()
    if not text:
        return None
    hex_value = _normalize_hex(text) if text.startswith("#") else ""
    if hex_value:
        return {"name": hex_value.lower(), "hex": hex_value}
    return {"name": color_key(text), "hex": ""}


def normalize_colors(value: Any) -> list[dict[str, str]]:
    colors: list[dict[str, str]] = []
    seen: set[str] = set()
    for entry in _split_csv(value):
        color = normalize_color(entry)
        if color and color["name"] not in seen:
            seen.add(color["name"])
            colors.append(color)
    return colors


def normalize_sizes(value: Any) -> list[str]:
    sizes: list[str] = []
    for entry in _split_csv(value):
        size = str(entry).strip()
        if size and size not in sizes:
            sizes.append(size)
    return sizes


def normalize_image_url(entry: Any) -> str | None:
    if isinstance(entry, dict):
        entry = entry.get("url") or entry.get("src") or entry.get("secure_url")
    if not entry:
        return None
    url = str(entry).strip()
    return url or None


def normalize_images(value: Any) -> list[str]:
    return [url for url in map(normalize_image_url, _split_csv(value)) if url]


class ColorOption(SQLModel):
    name: str
    hex: str = ""


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is optional: if omitted, generated from `title` (or `sku`).
    - images are appended to the gallery in the given order; the first one
      becomes the hero image unless hero_image_url is set.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(max_length=200)
    slug: str | None = Field(default=None, max_length=MAX_SLUG_LENGTH)
    description: str = ""
    price: float = Field(ge=0)
    mrp: float = Field(default=0, ge=0)
    sku: str = Field(default="", max_length=64)
    brand: str = Field(default="", max_length=100)
    category: str = Field(default="", max_length=100)
    stock: int = Field(default=0, ge=0)
    published: bool = False
    video_url: str = ""
    hero_image_url: str | None = None
    colors: list[ColorOption] = []
    sizes: list[str] = []
    images: list[str] = []

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("sku", "brand", "category", "video_url")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("colors", mode="before")
    @classmethod
    def coerce_colors(cls, v: Any) -> list[dict[str, str]]:
        return normalize_colors(v)

    @field_validator("sizes", mode="before")
    @classmethod
    def coerce_sizes(cls, v: Any) -> list[str]:
        return normalize_sizes(v)

    @field_validator("images", mode="before")
    @classmethod
    def coerce_images(cls, v: Any) -> list[str]:
        return normalize_images(v)


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional.

    Renaming does not change the slug unless `slug` is given or
    `reslug=true` asks to derive a fresh one from the new title.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=200)
    slug: str | None = Field(default=None, max_length=MAX_SLUG_LENGTH)
    reslug: bool = False
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    mrp: float | None = Field(default=None, ge=0)
    sku: str | None = Field(default=None, max_length=64)
    brand: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=100)
    stock: int | None = Field(default=None, ge=0)
    published: bool | None = None
    deleted: bool | None = None
    video_url: str | None = None
    hero_image_url: str | None = None  # allow manual override if needed
    colors: list[ColorOption] | None = None
    sizes: list[str] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty")
        return v

    @field_validator("colors", mode="before")
    @classmethod
    def coerce_colors(cls, v: Any) -> list[dict[str, str]] | None:
        if v is None:
            return None
        return normalize_colors(v)

    @field_validator("sizes", mode="before")
    @classmethod
    def coerce_sizes(cls, v: Any) -> list[str] | None:
        if v is None:
            return None
        return normalize_sizes(v)


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: uuid.UUID
    title: str
    slug: str
    description: str
    price: float
    mrp: float
    sku: str
    brand: str
    category: str
    stock: int
    published: bool
    deleted: bool
    hero_image_url: str | None
    video_url: str
    colors: list[ColorOption]
    sizes: list[str]
    created_at: datetime
    updated_at: datetime


class ProductPage(SQLModel):
    """
    Paged listing for the admin table.
    """

    items: list[ProductRead]
    total: int
    skip: int
    limit: int


class ProductImageRead(SQLModel):
    """
    Read model for gallery images.
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    product_id: uuid.UUID
    image_url: str
    sort_order: int
