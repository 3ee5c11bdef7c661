# app/core/storage_utils.py
import uuid

from app.core.config import get_settings
from app.core.supabase_client import supabase_admin


def _bucket():
    # Resolved per call so the app (and tests) start without storage config.
    return supabase_admin().storage.from_(get_settings().SUPABASE_BUCKET)


def upload_to_storage(path: str, file_bytes: bytes, content_type: str) -> str:
    """
    Upload raw bytes to Supabase Storage and return a public URL.

    If a file already exists at this path, it will be overwritten
    thanks to the 'upsert' option.

    Args:
        path: Full object path inside the bucket.
              Example: "products/<uuid>/hero.png"
        file_bytes: File content in bytes.
        content_type: MIME type stored with the object.

    Returns:
        Public URL to the uploaded file.
    """
    bucket = _bucket()
    bucket.upload(path, file_bytes, {"upsert": "true", "content-type": content_type})
    return bucket.get_public_url(path)


def delete_from_storage(path: str) -> None:
    """
    Delete a file from Supabase Storage by its object path.

    Example path (relative to bucket):
        'products/<uuid>/gallery/<uuid>.webp'
    """
    _bucket().remove([path])


def extract_path_from_public_url(url: str) -> str | None:
    """
    Given a public URL, extract the object path relative to the bucket.

    Example:
        https://<proj>.supabase.co/storage/v1/object/public/assets/products/p/hero.png
        -> 'products/p/hero.png'
    """
    marker = f"/storage/v1/object/public/{get_settings().SUPABASE_BUCKET}/"
    idx = url.find(marker)
    if idx == -1:
        return None
    return url[idx + len(marker) :].split("?", 1)[0]


def delete_public_url(url: str) -> None:
    """
    Convenience helper: delete a file by its public URL.
    No-op if the URL does not belong to this bucket (external image links).
    """
    path = extract_path_from_public_url(url)
    if path:
        delete_from_storage(path)


def generate_filename(ext: str) -> str:
    """
    Generate a random filename using UUID4.

    Args:
        ext: File extension without dot (e.g. "png", "jpg")

    Returns:
        A filename like "<uuid4>.png"
    """
    return f"{uuid.uuid4()}.{ext}"
