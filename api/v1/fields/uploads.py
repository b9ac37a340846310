import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, UploadFile, status

from schemas.upload import FileUploadResponse, MediaItemRead, RawFile, UploadOptions
from services.private_upload_service import PrivateUploadService, get_private_upload_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/{form_id}/fields/{field_id}/uploads/",
    response_model=FileUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file for a form field",
    description="Private uploads are isolated per field and form and purged once the submission completes"
)
async def upload_field_file(
    form_id: str = Path(..., description="Form ID"),
    field_id: str = Path(..., description="Field ID"),
    file: UploadFile = File(..., description="File to upload"),
    private: bool = Form(False, description="Store in the field's secret directory"),
    media_library: bool = Form(False, description="Add a public upload to the media library"),
    upload_service: PrivateUploadService = Depends(get_private_upload_service),
):
    content = await file.read()
    raw_file = RawFile(
        filename=file.filename or "",
        content_type=file.content_type,
        content=content,
    )
    options = UploadOptions(private=private, field_id=field_id, form_id=form_id)

    result = upload_service.upload(raw_file, options)
    if result.error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)

    media_item = None
    if media_library and not options.is_private:
        item = upload_service.add_to_media_library(result)
        media_item = MediaItemRead(
            id=str(item.id),
            title=item.title,
            url=item.url,
            mime_type=item.mime_type,
            status=item.status,
            attachment_metadata=item.attachment_metadata or {},
        )

    logger.info(f"Stored upload for field {field_id} on form {form_id} (private={options.is_private})")
    return FileUploadResponse(upload=result, private=options.is_private, media_item=media_item)
