"""
wacore Media Upload

Media messages carry a URL to previously uploaded content. Uploading to the
WhatsApp media servers is not implemented; PlaceholderMediaUploader derives
a stable URL from the content digest so media commands can be exercised
end to end.
"""

import hashlib
import logging
import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


logger = logging.getLogger(__name__)

MEDIA_BASE_URL = "https://media.whatsapp.net"

# Message kinds accepted by send_media_message()
MEDIA_KINDS = ("image", "video", "audio", "document", "sticker")


class MediaError(Exception):
    """Raised when media cannot be read or uploaded."""
    pass


@dataclass(frozen=True)
class UploadedMedia:
    """Result of an upload."""
    url: str
    mimetype: str
    size: int
    sha256: str


class MediaUploader(ABC):
    """Uploads media bytes and returns a retrievable URL."""

    @abstractmethod
    def upload(self, data: bytes, mimetype: str) -> UploadedMedia:
        pass

    def upload_source(self, source: Union[bytes, str, Path], mimetype: Optional[str] = None) -> UploadedMedia:
        """
        Upload raw bytes or a local file.

        Args:
            source: Bytes, or a path to read
            mimetype: Content type (guessed from the file name if None)

        Raises:
            MediaError: If the file cannot be read
        """
        if isinstance(source, (bytes, bytearray)):
            return self.upload(bytes(source), mimetype or "application/octet-stream")

        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise MediaError(f"Cannot read media file {path}: {e}") from e

        guessed, _ = mimetypes.guess_type(path.name)
        return self.upload(data, mimetype or guessed or "application/octet-stream")


class PlaceholderMediaUploader(MediaUploader):
    """Content-addressed placeholder URLs; nothing leaves the process."""

    def __init__(self, base_url: str = MEDIA_BASE_URL):
        self.base_url = base_url.rstrip("/")
        self.uploads = 0

    def upload(self, data: bytes, mimetype: str) -> UploadedMedia:
        digest = hashlib.sha256(data).hexdigest()
        self.uploads += 1
        logger.debug(f"Placeholder upload of {len(data)} bytes ({mimetype})")
        return UploadedMedia(
            url=f"{self.base_url}/{digest}",
            mimetype=mimetype,
            size=len(data),
            sha256=digest,
        )
