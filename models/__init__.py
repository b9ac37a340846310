from models.media_item import MediaItem
