"""Filesystem upload primitive: receives a file into the uploads directory"""

import mimetypes
import os
import re
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from core.logging_config import get_logger
from core.settings import settings
from schemas.upload import RawFile, UploadDestination, UploadPolicy, UploadResult

logger = get_logger(__name__)

# Marker the generic upload form posts along with the file
GENERIC_FORM_ACTION = "upload"

DestinationOverride = Callable[[UploadDestination], UploadDestination]


def private_destination(secret_dir_name: str) -> DestinationOverride:
    """
    Destination override that swaps the dated subdirectory for a secret one.

    ``uploads/2024/05`` becomes ``uploads/<secret_dir_name>``, for both the
    path and the URL.
    """
    new_subdir = f"/{secret_dir_name}"

    def override(destination: UploadDestination) -> UploadDestination:
        path = destination.path
        url = destination.url
        if destination.subdir:
            path = path.removesuffix(destination.subdir)
            url = url.removesuffix(destination.subdir)
        return destination.model_copy(update={
            "path": path + new_subdir,
            "url": url + new_subdir,
            "subdir": new_subdir,
        })

    return override


def time_subdir(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.strftime("%Y/%m")


class LocalUploadService:
    """Service for storing uploaded files below the uploads directory"""

    def __init__(
        self,
        base_dir: Optional[str] = None,
        base_url: Optional[str] = None,
        max_bytes: Optional[int] = None,
        allowed_extensions: Optional[set[str]] = None,
    ):
        self.base_dir = str(Path(base_dir or settings.UPLOADS_DIR).resolve())
        self.base_url = (base_url or settings.UPLOADS_URL).rstrip("/")
        self.max_bytes = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_BYTES
        self.allowed_extensions = (
            allowed_extensions if allowed_extensions is not None else settings.allowed_upload_extensions
        )

    def upload_dir(
        self,
        subdir: Optional[str] = None,
        destination_override: Optional[DestinationOverride] = None,
    ) -> UploadDestination:
        """Compute where an upload lands, then let the override rewrite it"""
        subdir = f"/{subdir.strip('/')}" if subdir and subdir.strip("/") else ""
        destination = UploadDestination(
            path=self.base_dir + subdir,
            url=self.base_url + subdir,
            subdir=subdir,
            basedir=self.base_dir,
            baseurl=self.base_url,
        )
        if destination_override is not None:
            destination = destination_override(destination)
        return destination

    def _sanitize_filename(self, filename: str) -> str:
        name = os.path.basename(filename.replace("\\", "/")).strip()
        name = re.sub(r"\s+", "-", name)
        name = re.sub(r"[^A-Za-z0-9._-]", "", name)
        name = name.lstrip(".-")
        return name

    def _unique_filename(self, directory: Path, filename: str) -> str:
        stem, ext = os.path.splitext(filename)
        candidate = filename
        number = 1
        while (directory / candidate).exists():
            candidate = f"{stem}-{number}{ext}"
            number += 1
        return candidate

    def _validate(self, raw_file: RawFile, filename: str, policy: UploadPolicy) -> Optional[str]:
        if raw_file.error:
            return raw_file.error
        if policy.validate_form and raw_file.form_action != GENERIC_FORM_ACTION:
            return "Invalid form submission."
        if not filename:
            return "File name is empty."
        if not raw_file.content:
            return "File is empty. Please upload something more substantial."
        if self.max_bytes and len(raw_file.content) > self.max_bytes:
            return "The uploaded file exceeds the maximum upload size."
        if policy.check_type:
            ext = os.path.splitext(filename)[1].lower().lstrip(".")
            if ext not in self.allowed_extensions:
                return "Sorry, this file type is not permitted for security reasons."
        return None

    def transfer(
        self,
        raw_file: RawFile,
        policy: Optional[UploadPolicy] = None,
        subdir: Optional[str] = None,
        destination_override: Optional[DestinationOverride] = None,
    ) -> UploadResult:
        """
        Store an uploaded file.

        Failures are reported through ``UploadResult.error``; nothing is
        written in that case.
        """
        policy = policy or UploadPolicy()
        filename = self._sanitize_filename(raw_file.filename)

        error = self._validate(raw_file, filename, policy)
        if error:
            logger.warning(f"Upload of '{raw_file.filename}' rejected: {error}")
            return UploadResult(error=error)

        destination = self.upload_dir(subdir, destination_override)
        directory = Path(destination.path)

        try:
            directory.mkdir(parents=True, exist_ok=True)
            filename = self._unique_filename(directory, filename)
            file_path = directory / filename
            with open(file_path, "xb") as fh:
                fh.write(raw_file.content)
        except OSError as e:
            logger.error(f"Error storing upload '{raw_file.filename}' in {directory}: {e}")
            return UploadResult(error="The uploaded file could not be moved to the uploads directory.")

        content_type = mimetypes.guess_type(filename)[0] or raw_file.content_type or "application/octet-stream"

        logger.info(f"Uploaded: {destination.subdir}/{filename}")
        return UploadResult(
            path=str(file_path),
            url=f"{destination.url}/{filename}",
            type=content_type,
        )


def get_local_upload_service() -> LocalUploadService:
    return LocalUploadService()
