"""
Private uploads for file fields.

A private upload is stored in a secret directory derived from the field
and form IDs instead of the public dated uploads folder. The directory is
purged when the submission completes (after mailing, if the form mails),
and a fallback job purges it an hour later for abandoned submissions.
"""

import hashlib
import hmac
import json
import os
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence

from fastapi import Depends

from core.hooks import Hooks
from core.logging_config import LogContext, get_logger
from core.settings import settings
from models import MediaItem
from repositories.media_repository import MediaRepository, get_media_repository
from schemas.form import Form
from schemas.upload import RawFile, UploadOptions, UploadPolicy, UploadResult
from services.cleanup_scheduler import CleanupScheduler, get_cleanup_scheduler
from services.field_type_registry_service import get_hooks
from services.form_service import get_fields_of_type, should_send_mail
from services.local_upload_service import (
    LocalUploadService,
    get_local_upload_service,
    private_destination,
    time_subdir,
)

logger = get_logger(__name__)

CRON_ACTION = "form_builder_delete_files"
MAILER_COMPLETE = "mailer_complete"
MAILER_FAILED = "mailer_failed"

# Field types whose uploads live in a secret directory
PRIVATE_FILE_FIELD_TYPES = ("advanced_file",)

# Public uploads land in YYYY/MM below the uploads directory
DATED_SUBDIR = re.compile(r"^\d{4}/\d{2}$")


class PrivateUploadService:
    def __init__(
        self,
        uploader: LocalUploadService,
        scheduler: CleanupScheduler,
        hooks: Hooks,
        media_repository: Optional[MediaRepository] = None,
        secret: Optional[str] = None,
        cleanup_delay: Optional[int] = None,
    ):
        self.uploader = uploader
        self.scheduler = scheduler
        self.hooks = hooks
        self.media_repository = media_repository
        self.secret = secret if secret is not None else settings.NONCE_SALT
        self.cleanup_delay = cleanup_delay if cleanup_delay is not None else settings.PRIVATE_UPLOAD_TTL_SECONDS

    def secret_dir(self, field_id: str, form_id: str) -> str:
        """Directory name for a field/form pair, unguessable without the server secret"""
        message = json.dumps([str(field_id), str(form_id)]).encode()
        return hmac.new(self.secret.encode(), message, hashlib.sha256).hexdigest()[:32]

    def secret_dir_path(self, field_id: str, form_id: str) -> Path:
        return Path(self.uploader.base_dir) / self.secret_dir(field_id, form_id)

    def upload(self, raw_file: RawFile, options: Optional[UploadOptions] = None) -> UploadResult:
        """
        Store an uploaded file, privately when the options ask for it and
        name both the field and the form. The uploader's result is returned
        as is, errors included.
        """
        options = options or UploadOptions()

        destination_override = None
        if options.is_private:
            # Scheduled before the transfer so a failed upload is still purged
            self.scheduler.schedule(self.cleanup_delay, CRON_ACTION, [options.field_id, options.form_id])
            destination_override = private_destination(self.secret_dir(options.field_id, options.form_id))

        with LogContext(field_id=options.field_id, form_id=options.form_id):
            return self.uploader.transfer(
                raw_file,
                policy=UploadPolicy(validate_form=False),
                subdir=time_subdir(),
                destination_override=destination_override,
            )

    def add_to_media_library(self, upload: UploadResult) -> MediaItem:
        """Register a completed public upload as a permanent media item"""
        if self.media_repository is None:
            raise RuntimeError("No media repository configured")
        if not upload.ok:
            raise ValueError(f"Cannot add a failed upload to the media library: {upload.error}")

        upload_dir = os.path.relpath(os.path.dirname(upload.path), self.uploader.base_dir)
        if not DATED_SUBDIR.match(upload_dir.replace(os.sep, "/")):
            raise ValueError(f"Only public uploads can be added to the media library: {upload.path}")

        file_name = os.path.basename(upload.path)
        title = os.path.splitext(file_name)[0]

        item = self.media_repository.get_by_guid(upload.path)
        if item is None:
            item = self.media_repository.create(
                guid=upload.path,
                url=upload.url,
                mime_type=upload.type,
                title=title,
            )

        try:
            relative = os.path.relpath(upload.path, self.uploader.base_dir)
            filesize = os.path.getsize(upload.path)
        except OSError as e:
            logger.warning(f"Could not read attachment metadata for {upload.path}: {e}")
            return item

        logger.info(f"Added {file_name} to the media library")
        return self.media_repository.update_metadata(item, {"file": relative, "filesize": filesize})

    def purge(self, field_id: str, form_id: str) -> bool:
        """
        Delete the secret directory of a field/form pair and the files in it.
        A missing directory is not an error. Returns whether anything was removed.
        """
        directory = self.secret_dir_path(field_id, form_id)
        if not directory.is_dir():
            return False

        try:
            for entry in directory.iterdir():
                if entry.is_file() or entry.is_symlink():
                    entry.unlink(missing_ok=True)
            directory.rmdir()
        except FileNotFoundError:
            # Purged concurrently by the other cleanup trigger
            return False
        except OSError as e:
            logger.error(f"Error deleting private uploads of field {field_id} on form {form_id}: {e}")
            raise

        logger.info_ctx("Deleted private uploads", field_id=field_id, form_id=form_id)
        return True

    def cleanup(self, form: Form, second_run: bool = False) -> List[str]:
        """
        Purge the private uploads of a completed submission.

        Forms that mail their submissions are purged only after the mailer
        reports success or failure: the first run registers for those
        events and deletes nothing. Returns the IDs of purged fields.
        """
        if not second_run and should_send_mail(form):
            self.hooks.add_action(MAILER_COMPLETE, self.delete_after_mail)
            self.hooks.add_action(MAILER_FAILED, self.delete_after_mail)
            logger.debug(f"Deferred private upload cleanup of form {form.ID} until mail is processed")
            return []

        purged = []
        for field in get_fields_of_type(form, *PRIVATE_FILE_FIELD_TYPES):
            try:
                removed = self.purge(field.ID, form.ID)
            except OSError:
                # Left for the scheduled fallback purge
                continue
            if removed:
                purged.append(field.ID)
        return purged

    def delete_after_mail(self, mail: Any, data: Any, form: Form) -> List[str]:
        return self.cleanup(form, second_run=True)

    def cleanup_via_cron(self, args: Sequence[Any]) -> bool:
        """Fallback purge for submissions that never completed"""
        if args is None or len(args) < 2:
            logger.warning(f"Ignoring private upload cleanup with arguments {args!r}")
            return False
        return self.purge(str(args[0]), str(args[1]))


def build_private_upload_service(
    hooks: Optional[Hooks] = None,
    media_repository: Optional[MediaRepository] = None,
) -> PrivateUploadService:
    return PrivateUploadService(
        uploader=get_local_upload_service(),
        scheduler=get_cleanup_scheduler(),
        hooks=hooks if hooks is not None else Hooks(),
        media_repository=media_repository,
    )


def delete_files_action(args: Sequence[Any]) -> None:
    """Scheduled job body for CRON_ACTION"""
    build_private_upload_service().cleanup_via_cron(args)


def register_cleanup_action(scheduler: CleanupScheduler) -> None:
    scheduler.register_action(CRON_ACTION, delete_files_action)


def get_private_upload_service(
    hooks: Hooks = Depends(get_hooks),
    media_repository: MediaRepository = Depends(get_media_repository),
) -> PrivateUploadService:
    return build_private_upload_service(hooks=hooks, media_repository=media_repository)
