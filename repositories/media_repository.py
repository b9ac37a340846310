from typing import Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from db.session import get_db
from models import MediaItem


class MediaRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_guid(self, guid: str) -> Optional[MediaItem]:
        stmt = select(MediaItem).where(MediaItem.guid == guid)
        return self.db.execute(stmt).scalar_one_or_none()

    def create(self, guid: str, url: str, mime_type: Optional[str], title: str) -> MediaItem:
        """Insert an attachment row for a file already on disk"""
        item = MediaItem(
            guid=guid,
            url=url,
            mime_type=mime_type,
            title=title,
            content="",
            status="inherit",
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_metadata(self, item: MediaItem, metadata: dict) -> MediaItem:
        item.attachment_metadata = metadata
        self.db.commit()
        self.db.refresh(item)
        return item


def get_media_repository(db: Session = Depends(get_db)) -> MediaRepository:
    return MediaRepository(db)
