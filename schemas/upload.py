from typing import Optional
from pydantic import BaseModel, Field


class RawFile(BaseModel):
    """An uploaded file as received from the client"""
    filename: str = Field(..., description="Client supplied file name")
    content_type: Optional[str] = Field(None, description="Client supplied MIME type")
    content: bytes = Field(b"", description="File bytes")
    form_action: Optional[str] = Field(None, description="Generic upload form marker")
    error: Optional[str] = Field(None, description="Receiver side failure, if any")


class UploadOptions(BaseModel):
    """Placement arguments for an upload"""
    private: bool = False
    field_id: Optional[str] = None
    form_id: Optional[str] = None

    @property
    def is_private(self) -> bool:
        return bool(self.private and self.field_id and self.form_id)


class UploadPolicy(BaseModel):
    """Validation the host upload primitive performs"""
    validate_form: bool = Field(True, description="Require the generic upload form marker")
    check_type: bool = Field(True, description="Only accept allowed file extensions")


class UploadDestination(BaseModel):
    """Where an upload lands on disk and on the web"""
    path: str
    url: str
    subdir: str
    basedir: str
    baseurl: str


class UploadResult(BaseModel):
    path: Optional[str] = Field(None, description="Absolute file path")
    url: Optional[str] = Field(None, description="Public URL of the file")
    type: Optional[str] = Field(None, description="MIME type")
    error: Optional[str] = Field(None, description="Set when the upload failed")

    @property
    def ok(self) -> bool:
        return self.error is None and self.path is not None


class MediaItemRead(BaseModel):
    id: str
    title: str
    url: str
    mime_type: Optional[str] = None
    status: str
    attachment_metadata: dict = Field(default_factory=dict)


class FileUploadResponse(BaseModel):
    """Response of the upload endpoint"""
    upload: UploadResult
    private: bool = False
    media_item: Optional[MediaItemRead] = None
