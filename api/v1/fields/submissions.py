"""Submission lifecycle events that drive private upload cleanup"""

import logging

from fastapi import APIRouter, Depends

from core.hooks import Hooks
from schemas.form import CleanupResponse, Form, MailEvent
from services.field_type_registry_service import get_hooks
from services.form_service import should_send_mail
from services.private_upload_service import (
    MAILER_COMPLETE,
    MAILER_FAILED,
    PrivateUploadService,
    get_private_upload_service,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/complete/", response_model=CleanupResponse)
def submission_complete(
    form: Form,
    upload_service: PrivateUploadService = Depends(get_private_upload_service),
):
    """
    A submission was stored. Private uploads are purged now, or left for the
    mail events when the form mails its submissions.
    """
    purged = upload_service.cleanup(form)
    return CleanupResponse(form_id=form.ID, deferred=should_send_mail(form), purged_fields=purged)


def _mail_processed(hook_name: str, event: MailEvent, hooks: Hooks, upload_service: PrivateUploadService):
    purged = upload_service.delete_after_mail(event.mail, event.data, event.form)
    hooks.do_action(hook_name, event.mail, event.data, event.form)
    logger.info(f"Mail processed for form {event.form.ID} ({hook_name}), purged fields: {purged}")
    return CleanupResponse(form_id=event.form.ID, purged_fields=purged)


@router.post("/mail-complete/", response_model=CleanupResponse)
def mail_complete(
    event: MailEvent,
    hooks: Hooks = Depends(get_hooks),
    upload_service: PrivateUploadService = Depends(get_private_upload_service),
):
    return _mail_processed(MAILER_COMPLETE, event, hooks, upload_service)


@router.post("/mail-failed/", response_model=CleanupResponse)
def mail_failed(
    event: MailEvent,
    hooks: Hooks = Depends(get_hooks),
    upload_service: PrivateUploadService = Depends(get_private_upload_service),
):
    return _mail_processed(MAILER_FAILED, event, hooks, upload_service)
