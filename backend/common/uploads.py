from __future__ import annotations

import logging
import time
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from rest_framework.exceptions import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def validate_image(upload) -> str:
    """Returns the file extension to store the upload under."""
    if upload is None:
        raise ValidationError({"file": ["No file provided."]})
    content_type = (getattr(upload, "content_type", "") or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError({"file": ["Invalid file type. Allowed: jpeg, png, webp, gif."]})
    if upload.size > settings.UPLOAD_MAX_BYTES:
        raise ValidationError({"file": [f"File too large. Max size is {settings.UPLOAD_MAX_BYTES // (1024 * 1024)}MB."]})
    return ALLOWED_IMAGE_TYPES[content_type]


def save_tenant_image(tenant, upload, folder: str = "") -> str:
    """Stores under `<tenant_id>/[folder/]<timestamp>-<uuid>.<ext>` and returns the public URL."""
    ext = validate_image(upload)
    parts = [str(tenant.id)] + ([folder] if folder else [])
    name = "/".join(parts + [f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{ext}"])
    stored = default_storage.save(name, upload)
    logger.info("stored upload %s for tenant %s (%s bytes)", stored, tenant.slug, upload.size)
    return default_storage.url(stored)
