"""
Proof photo storage for task completions.

Photos are validated before a completion is saved and uploaded after it
commits. Uploading is best-effort: failures are logged and never undo or
fail the completion itself.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import requests
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.utils import secure_filename

from choreboard.services.scoring import ProofPhoto

logger = logging.getLogger(__name__)

DEFAULT_MAX_PHOTOS = 5
DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_ALLOWED_TYPES = ('image/jpeg', 'image/png', 'image/webp')

EXTENSIONS = {
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'image/webp': 'webp',
}


class PhotoUploadError(Exception):
    """Raised when a photo could not be written to the blob store."""


def validate_proof_photos(photos: Sequence[ProofPhoto],
                          max_photos: int = DEFAULT_MAX_PHOTOS,
                          max_bytes: int = DEFAULT_MAX_BYTES,
                          allowed_types: Sequence[str] = DEFAULT_ALLOWED_TYPES) -> Tuple[List[ProofPhoto], List[str]]:
    """
    Split submitted photos into accepted ones and user-facing warnings.

    Each invalid photo is dropped on its own; the remaining valid photos
    are kept in submission order.

    Args:
        photos: Photos in submission order
        max_photos: Maximum number of photos kept per completion
        max_bytes: Maximum size of a single photo
        allowed_types: Accepted MIME types

    Returns:
        tuple: (accepted photos, warning messages)
    """
    accepted = []
    warnings = []
    max_mb = max_bytes // (1024 * 1024)

    for photo in photos:
        name = photo.filename or 'photo'

        if len(accepted) >= max_photos:
            warnings.append(f'Maximum {max_photos} photos allowed. "{name}" was not attached.')
            continue

        if photo.size == 0:
            warnings.append(f'Photo "{name}" is empty.')
            continue

        if photo.size > max_bytes:
            warnings.append(f'Photo "{name}" is too large. Maximum {max_mb}MB per photo.')
            continue

        if photo.content_type not in allowed_types:
            warnings.append(f'Photo "{name}" is not a supported format. Use JPG, PNG, or WebP.')
            continue

        accepted.append(photo)

    return accepted, warnings


def photo_extension(photo: ProofPhoto) -> str:
    """Get a safe file extension for a photo, preferring its filename's."""
    filename = secure_filename(photo.filename or '')
    suffix = Path(filename).suffix.lower().lstrip('.')
    if suffix:
        return suffix
    return EXTENSIONS.get(photo.content_type, 'bin')


def build_photo_key(household_id: int, task_id: int, completion_id: int, index: int, photo: ProofPhoto) -> str:
    """Storage key for a photo: household/task/completion/index.ext"""
    return f'{household_id}/{task_id}/{completion_id}/{index}.{photo_extension(photo)}'


class LocalPhotoStorage:
    """Stores photos on the local filesystem; Flask serves them under base_url."""

    def __init__(self, root, base_url: str = '/photos'):
        self.root = Path(root)
        self.base_url = base_url.rstrip('/')

    def save(self, key: str, photo: ProofPhoto) -> str:
        path = self.root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(photo.data)
        except OSError as e:
            raise PhotoUploadError(f'Could not write {key}: {e}') from e
        return f'{self.base_url}/{key}'


class HttpPhotoStorage:
    """Stores photos in an HTTP object store bucket."""

    def __init__(self, base_url: str, bucket: str, token: Optional[str] = None,
                 public_url: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip('/')
        self.bucket = bucket
        self.token = token
        self.public_url = (public_url or base_url).rstrip('/')
        self.timeout = timeout

    def object_url(self, key: str) -> str:
        return f'{self.base_url}/object/{self.bucket}/{key}'

    def public_object_url(self, key: str) -> str:
        return f'{self.public_url}/object/public/{self.bucket}/{key}'

    def save(self, key: str, photo: ProofPhoto) -> str:
        headers = {
            'Content-Type': photo.content_type,
            'Cache-Control': 'max-age=3600',
            'x-upsert': 'false'
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'

        try:
            response = requests.post(
                self.object_url(key),
                data=photo.data,
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()

        except requests.exceptions.Timeout as e:
            raise PhotoUploadError(f'Upload timeout for {key}') from e

        except requests.exceptions.RequestException as e:
            raise PhotoUploadError(f'Upload failed for {key}: {e}') from e

        logger.debug(f"Uploaded photo {key} (status {response.status_code})")
        return self.public_object_url(key)


def get_photo_storage():
    """Build the photo storage backend configured for the current app."""
    from flask import current_app

    backend = current_app.config.get('PHOTO_STORAGE_BACKEND', 'local')

    if backend == 'http':
        base_url = current_app.config.get('PHOTO_STORAGE_URL')
        if not base_url:
            raise PhotoUploadError('PHOTO_STORAGE_URL is not configured')
        return HttpPhotoStorage(
            base_url=base_url,
            bucket=current_app.config.get('PHOTO_BUCKET', 'task-completion-photos'),
            token=current_app.config.get('PHOTO_STORAGE_TOKEN'),
            public_url=current_app.config.get('PHOTO_PUBLIC_URL'),
            timeout=current_app.config.get('PHOTO_UPLOAD_TIMEOUT', 10)
        )

    root = current_app.config.get('PHOTO_DIR') or Path(current_app.config['DATA_DIR']) / 'photos'
    return LocalPhotoStorage(root, current_app.config.get('PHOTO_BASE_URL', '/photos'))


def upload_completion_photos(completion_id: int, household_id: int, task_id: int,
                             photos: Sequence[ProofPhoto]) -> List[str]:
    """
    Upload a completion's photos in order and record their URLs.

    Photos that fail are logged and skipped.

    Returns:
        list: URLs of the photos that were stored
    """
    from choreboard.models import db, TaskCompletion

    try:
        storage = get_photo_storage()
    except PhotoUploadError as e:
        logger.error(f"Photo storage unavailable for completion {completion_id}: {e}")
        return []

    urls = []
    for index, photo in enumerate(photos):
        key = build_photo_key(household_id, task_id, completion_id, index, photo)
        try:
            urls.append(storage.save(key, photo))
        except PhotoUploadError as e:
            logger.error(f"Photo upload failed for completion {completion_id}: {e}")

    if not urls:
        return urls

    try:
        completion = db.session.get(TaskCompletion, completion_id)
        if completion is None:
            logger.warning(f"Completion {completion_id} disappeared before photo URLs were saved")
            return urls
        completion.proof_urls = urls
        db.session.commit()
        logger.info(f"Stored {len(urls)} proof photo(s) for completion {completion_id}")
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to record photo URLs for completion {completion_id}: {e}")

    return urls


def dispatch_photo_upload(completion_id: int, household_id: int, task_id: int,
                          photos: Sequence[ProofPhoto]) -> None:
    """
    Upload photos outside the completion's transaction.

    Queued as a one-off background job when the scheduler is running,
    otherwise uploaded inline. Never raises.
    """
    if not photos:
        return

    from flask import current_app
    from choreboard.scheduler import get_scheduler, with_app_context

    scheduler = get_scheduler()
    try:
        if scheduler.running:
            scheduler.add_job(
                with_app_context(current_app._get_current_object(), upload_completion_photos),
                args=[completion_id, household_id, task_id, list(photos)],
                id=f'photo_upload_{completion_id}',
                name=f'Upload proof photos for completion {completion_id}',
                replace_existing=True
            )
            logger.debug(f"Queued photo upload for completion {completion_id}")
        else:
            upload_completion_photos(completion_id, household_id, task_id, photos)
    except Exception as e:
        logger.error(f"Photo upload for completion {completion_id} could not run: {e}", exc_info=True)
