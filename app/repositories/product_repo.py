# app/repositories/product_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.product import Product, ProductImage


class ProductRepository:
    """
    Data access layer for Product & ProductImage.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(func.lower(Product.slug) == slug.lower())
        return session.exec(stmt).first()

    def slug_exists(
        self,
        session: Session,
        slug: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        """
        Case-insensitive existence check used by the slug resolver.
        `exclude_id` lets a product keep its own slug on update.
        """
        stmt = select(Product.id).where(func.lower(Product.slug) == slug.lower())
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        return session.exec(stmt.limit(1)).first() is not None

    def _filtered(
        self,
        stmt,
        only_published: bool,
        include_deleted: bool,
        category: str | None,
    ):
        if only_published:
            stmt = stmt.where(Product.published == True)  # noqa: E712
        if not include_deleted:
            stmt = stmt.where(Product.deleted == False)  # noqa: E712
        if category:
            stmt = stmt.where(func.lower(Product.category) == category.lower())
        return stmt

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_published: bool = True,
        include_deleted: bool = False,
        category: str | None = None,
    ) -> list[Product]:
        stmt = self._filtered(select(Product), only_published, include_deleted, category)
        stmt = stmt.order_by(Product.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def count(
        self,
        session: Session,
        only_published: bool = True,
        include_deleted: bool = False,
        category: str | None = None,
    ) -> int:
        stmt = self._filtered(
            select(func.count()).select_from(Product),
            only_published,
            include_deleted,
            category,
        )
        return session.exec(stmt).one()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    # ----- Product images -----

    def list_images_for_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[ProductImage]:
        stmt = (
            select(ProductImage)
            .where(ProductImage.product_id == product_id)
            .order_by(ProductImage.sort_order)
        )
        return session.exec(stmt).all()

    def get_image_by_id(
        self,
        session: Session,
        image_id: uuid.UUID,
    ) -> ProductImage | None:
        return session.get(ProductImage, image_id)

    def create_image(
        self,
        session: Session,
        image: ProductImage,
    ) -> ProductImage:
        session.add(image)
        session.commit()
        session.refresh(image)
        return image

    def delete_image(
        self,
        session: Session,
        image: ProductImage,
    ) -> None:
        session.delete(image)
        session.commit()
