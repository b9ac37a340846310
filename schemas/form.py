"""Form configuration as handed over by the form store"""

from typing import Any, Optional
from pydantic import BaseModel, Field


class FormField(BaseModel):
    ID: str
    type: str
    slug: Optional[str] = None
    label: Optional[str] = None
    config: dict[str, Any] = Field(default_factory=dict)


class MailerConfig(BaseModel):
    on_insert: bool = True


class Form(BaseModel):
    ID: str
    name: Optional[str] = None
    fields: dict[str, FormField] = Field(default_factory=dict)
    mailer: MailerConfig = Field(default_factory=MailerConfig)


class MailEvent(BaseModel):
    """Mailer lifecycle event: the mail, the submission data and the form"""
    mail: dict[str, Any] = Field(default_factory=dict)
    data: dict[str, Any] = Field(default_factory=dict)
    form: Form


class CleanupResponse(BaseModel):
    form_id: str
    deferred: bool = False
    purged_fields: list[str] = Field(default_factory=list)
