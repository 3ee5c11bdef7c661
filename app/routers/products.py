# app/routers/products.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.schemas.product import (
    ProductCreate,
    ProductRead,
    ProductUpdate,
    ProductImageRead,
    ProductPage,
)
from app.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


# -------- Public endpoints --------
# Static paths (/admin, /slug/...) are declared before /{product_id}.


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    category: str | None = None,
):
    """
    List published products, newest first.

    - Public endpoint.
    - Soft-deleted and unpublished products are hidden.
    """
    return service.list_products(session, skip=skip, limit=limit, category=category)


@router.get("/slug/{slug}", response_model=ProductRead)
def get_product_by_slug(
    slug: str,
    session: Session = Depends(get_session),
):
    """
    Get a published product by its URL slug (case-insensitive).
    """
    return service.get_by_slug(session, slug)


# -------- Admin endpoints --------


@router.get(
    "/admin",
    response_model=ProductPage,
    dependencies=[Depends(require_admin)],
)
def list_products_admin(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    include_deleted: bool = False,
    category: str | None = None,
):
    """
    List all products including drafts (admin only), with a total count.
    """
    return service.list_products_admin(
        session,
        skip=skip,
        limit=limit,
        include_deleted=include_deleted,
        category=category,
    )


@router.get(
    "/admin/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def get_product_admin(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get any product by id, published or not (admin only).
    """
    return service.get_product(session, product_id)


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a new product (admin only).

    The slug is derived from `slug`, else `title`, else `sku`, and made
    unique by suffixing -1, -2, ...
    """
    return service.create_product(session, payload)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single published product by id.

    - Public endpoint.
    """
    return service.get_published_product(session, product_id)


@router.get(
    "/{product_id}/images",
    response_model=list[ProductImageRead],
)
def list_product_images(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    List gallery images for a product (public).
    """
    service.get_published_product(session, product_id)
    return service.list_images(session, product_id)


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update an existing product (admin only).

    Renaming keeps the slug unless `slug` is sent or `reslug=true`.
    """
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    hard: bool = False,
    session: Session = Depends(get_session),
):
    """
    Delete a product (admin only).

    - Default: soft delete (hidden from storefront, kept for order history).
    - `hard=true`: remove rows and Storage files.
    """
    service.delete_product(session, product_id, hard=hard)
    return None


@router.post(
    "/{product_id}/hero-image",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
    summary="Upload or replace hero image for a product",
)
def upload_hero_image(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    """
    Upload a new hero image for the product.

    - Accepts JPEG, PNG, WEBP.
    - Overwrites any previous hero image.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    return service.set_hero_image(
        session=session,
        product_id=product_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
    )


@router.post(
    "/{product_id}/gallery",
    response_model=list[ProductImageRead],
    dependencies=[Depends(require_admin)],
    summary="Upload one or more gallery images for a product",
)
def upload_gallery_images(
    product_id: uuid.UUID,
    files: list[UploadFile] = File(...),
    session: Session = Depends(get_session),
):
    """
    Upload one or more gallery images for the product.

    - Accepts JPEG, PNG, WEBP.
    - New images are appended at the end of the gallery (sort_order).
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded",
        )

    payload: list[tuple[str, bytes]] = []
    for f in files:
        if not f.content_type:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing content-type for one of the uploaded files",
            )
        payload.append((f.content_type, f.file.read()))

    return service.add_gallery_images(
        session=session,
        product_id=product_id,
        files=payload,
    )


@router.delete(
    "/{product_id}/gallery/{image_id}",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
    summary="Delete a gallery image by id",
)
def delete_gallery_image(
    product_id: uuid.UUID,
    image_id: uuid.UUID,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    """
    Delete a gallery image for a product (admin only).
    """
    service.remove_gallery_image(session, product_id, image_id)
    return {"message": "Gallery image deleted successfully"}
