# app/services/product_service.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.slugs import random_slug_suffix, resolve_unique_slug, slugify
from app.core.storage_utils import (
    upload_to_storage,
    delete_public_url,
    generate_filename,
)
from app.models.product import Product, ProductImage
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductPage, ProductUpdate

logger = logging.getLogger(__name__)


# --- Image config ---

MAX_IMAGE_BYTES = 6 * 1024 * 1024  # 6MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class ProductService:
    """
    Business logic for Product & ProductImage.

    Responsibilities:
      - slug generation & uniqueness (pre-check + unique index + one retry)
      - soft / hard delete
      - image upload/delete orchestration with Supabase
      - admin-only operations (enforced at router via require_admin)
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Helpers -----

    def _resolve_slug(
        self,
        session: Session,
        source: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> str:
        return resolve_unique_slug(
            source,
            lambda candidate, excluded: self.repo.slug_exists(session, candidate, excluded),
            exclude_id=exclude_id,
        )

    @staticmethod
    def _validate_and_get_ext(content_type: str, file_bytes: bytes) -> str:
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unsupported image type. Allowed: JPEG, PNG, WEBP.",
            )

        if len(file_bytes) > MAX_IMAGE_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Image too large (max 6MB).",
            )

        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    @staticmethod
    def _slug_conflict() -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Could not allocate a unique slug, please retry",
        )

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        category: str | None = None,
    ) -> list[Product]:
        """Storefront listing: published and not deleted."""
        return self.repo.list_products(
            session, skip=skip, limit=limit, only_published=True, category=category
        )

    def list_products_admin(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        include_deleted: bool = False,
        category: str | None = None,
    ) -> ProductPage:
        items = self.repo.list_products(
            session,
            skip=skip,
            limit=limit,
            only_published=False,
            include_deleted=include_deleted,
            category=category,
        )
        total = self.repo.count(
            session,
            only_published=False,
            include_deleted=include_deleted,
            category=category,
        )
        return ProductPage(items=items, total=total, skip=skip, limit=limit)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_published_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product or product.deleted or not product.published:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_by_slug(self, session: Session, slug: str) -> Product:
        product = self.repo.get_by_slug(session, slug.strip())
        if not product or product.deleted or not product.published:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def create_product(
        self,
        session: Session,
        payload: ProductCreate,
    ) -> Product:
        """
        Create a new product with a unique slug.

        - Slug source: first of slug, title, sku that slugifies to something.
        - If the insert still hits the unique index (concurrent create with
          the same title), regenerate once with a random suffix.
        - payload.images become ordered gallery rows.
        """
        slug_source = next(
            (text for text in (payload.slug, payload.title, payload.sku) if slugify(text)),
            None,
        )
        fields: dict[str, Any] = payload.model_dump(exclude={"slug", "images"})
        fields["hero_image_url"] = payload.hero_image_url or (
            payload.images[0] if payload.images else None
        )
        fields["slug"] = self._resolve_slug(session, slug_source)

        try:
            product = self.repo.create(session, Product(**fields))
        except IntegrityError:
            session.rollback()
            fields["slug"] = random_slug_suffix(slug_source)
            logger.warning("Slug conflict on create, retrying with %r", fields["slug"])
            try:
                product = self.repo.create(session, Product(**fields))
            except IntegrityError:
                session.rollback()
                raise self._slug_conflict()

        for idx, url in enumerate(payload.images):
            self.repo.create_image(
                session,
                ProductImage(product_id=product.id, image_url=url, sort_order=idx),
            )

        return product

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update of a product.

        - Slug is recomputed only on an explicit `slug` or `reslug=true`,
          excluding the product itself from the uniqueness check.
        """
        product = self.get_product(session, product_id)

        changes = payload.model_dump(exclude_unset=True, exclude={"slug", "reslug"})
        changes = {k: v for k, v in changes.items() if v is not None}

        slug_source: str | None = None
        if payload.slug is not None:
            slug_source = payload.slug
        elif payload.reslug:
            slug_source = changes.get("title", product.title)

        if slug_source is not None:
            changes["slug"] = self._resolve_slug(session, slug_source, exclude_id=product.id)

        changes["updated_at"] = datetime.now(timezone.utc)

        try:
            return self._apply_changes(session, product, changes)
        except IntegrityError:
            session.rollback()
            if slug_source is None:
                raise
            changes["slug"] = random_slug_suffix(slug_source)
            logger.warning("Slug conflict on update, retrying with %r", changes["slug"])
            try:
                return self._apply_changes(session, self.get_product(session, product_id), changes)
            except IntegrityError:
                session.rollback()
                raise self._slug_conflict()

    def _apply_changes(
        self,
        session: Session,
        product: Product,
        changes: dict[str, Any],
    ) -> Product:
        for key, value in changes.items():
            setattr(product, key, value)
        return self.repo.update(session, product)

    def delete_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        hard: bool = False,
    ) -> None:
        """
        Soft delete by default (hidden from the storefront, kept for orders).

        hard=True deletes the product and its gallery rows, and cleans up
        Storage. Products referenced by orders cannot be hard-deleted.
        """
        product = self.get_product(session, product_id)

        if not hard:
            product.deleted = True
            product.updated_at = datetime.now(timezone.utc)
            self.repo.update(session, product)
            return

        images = self.repo.list_images_for_product(session, product_id)
        urls = [img.image_url for img in images]
        if product.hero_image_url:
            urls.append(product.hero_image_url)

        try:
            for img in images:
                session.delete(img)
            session.delete(product)
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Product is referenced by orders; use soft delete instead",
            )

        # Best-effort Storage cleanup once the rows are gone
        for url in set(urls):
            try:
                delete_public_url(url)
            except Exception as exc:
                logger.warning("Storage cleanup failed for %s: %s", url, exc)

    # ----- Hero image -----

    def set_hero_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> Product:
        """
        Upload or replace the hero image for a product.

        - Validates content type + size.
        - Deletes old hero image from Storage if present.
        - Uploads new hero image to deterministic path.

        Path pattern:
            products/<product_id>/hero.<ext>
        """
        product = self.get_product(session, product_id)
        ext = self._validate_and_get_ext(content_type, file_bytes)

        if product.hero_image_url:
            delete_public_url(product.hero_image_url)

        path = f"products/{product.id}/hero.{ext}"
        product.hero_image_url = upload_to_storage(path, file_bytes, content_type)
        product.updated_at = datetime.now(timezone.utc)

        return self.repo.update(session, product)

    # ----- Gallery images -----

    def list_images(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[ProductImage]:
        """
        List gallery images for a product (sorted by sort_order).
        """
        self.get_product(session, product_id)
        return self.repo.list_images_for_product(session, product_id)

    def add_gallery_images(
        self,
        session: Session,
        product_id: uuid.UUID,
        files: Iterable[tuple[str, bytes]],
    ) -> list[ProductImage]:
        """
        Upload one or more gallery images for a product.

        Args:
            files: iterable of (content_type, file_bytes)

        Path pattern:
            products/<product_id>/gallery/<uuid>.<ext>
        """
        product = self.get_product(session, product_id)
        existing_images = self.repo.list_images_for_product(session, product.id)
        next_order = len(existing_images)

        new_images: list[ProductImage] = []

        for idx, (content_type, file_bytes) in enumerate(files):
            ext = self._validate_and_get_ext(content_type, file_bytes)
            path = f"products/{product.id}/gallery/{generate_filename(ext)}"
            url = upload_to_storage(path, file_bytes, content_type)

            image = ProductImage(
                product_id=product.id,
                image_url=url,
                sort_order=next_order + idx,
            )
            new_images.append(self.repo.create_image(session, image))

        if not product.hero_image_url and new_images:
            product.hero_image_url = new_images[0].image_url
            self.repo.update(session, product)

        return new_images

    def remove_gallery_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        image_id: uuid.UUID,
    ) -> None:
        """
        Delete a single gallery image and its Storage file.

        - Ensures the image belongs to the given product_id.
        """
        image = self.repo.get_image_by_id(session, image_id)
        if not image or image.product_id != product_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found for this product",
            )

        delete_public_url(image.image_url)

        self.repo.delete_image(session, image)
