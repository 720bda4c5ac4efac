"""Match CSV rows to uploaded images.

A row references its image through the ``image_path`` column, usually a path
from whatever tool exported the CSV (``messages/images/Group/Group_12_ts.jpg``).
Stored images are named ``{upload_id}_{index}_{original_name}``, so matching
works on the original name recovered from the stored filename:

1. the row value is reduced to its last path component (``target_name``);
2. each stored image is indexed under its derived original filename, in
   upload order (``ImageIndex.add``);
3. an exact derived-name match wins, otherwise the first indexed name that
   equals, contains or is contained in the target (``ImageIndex.match``).

The substring fallback is first-match-wins in upload order, not best-match.
"""
import base64
import logging
import posixpath
import re
from typing import Dict, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

IMAGE_PATH_COLUMN = "image_path"
HAS_IMAGE_COLUMN = "has_image"
HAS_IMAGE_TRUE = "TRUE"

_UPLOAD_PREFIX = re.compile(r"^[^_]*_\d+_")

_MIME_BY_EXT = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}
DEFAULT_MIME = "image/jpeg"


def target_name(image_path_value: Optional[str]) -> str:
    """Last path component of a CSV ``image_path`` value, split on / and \\."""
    if not image_path_value:
        return ""
    return re.split(r"[/\\]", image_path_value)[-1].strip()


def stored_basename(stored_path: str) -> str:
    return posixpath.basename(stored_path.replace("\\", "/"))


def derive_original_filename(stored_path: str) -> str:
    # "images/<uuid>_3_photo.jpg" -> "photo.jpg"
    return _UPLOAD_PREFIX.sub("", stored_basename(stored_path), count=1)


def image_mime_type(path: str) -> str:
    ext = posixpath.splitext(path.lower())[1]
    return _MIME_BY_EXT.get(ext, DEFAULT_MIME)


def to_data_url(path: str, data: bytes) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{image_mime_type(path)};base64,{payload}"


def wants_image(row: Mapping[str, str]) -> bool:
    return row.get(HAS_IMAGE_COLUMN) == HAS_IMAGE_TRUE


class ImageIndex:
    """Inline image data for one upload, keyed for display and for matching."""

    def __init__(self):
        # derived original filename -> data url, in build order
        self.by_original: Dict[str, str] = {}
        # stored path and bare stored filename -> data url
        self.display: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self.by_original)

    def add(self, stored_path: str, data: bytes) -> str:
        url = to_data_url(stored_path, data)
        original = derive_original_filename(stored_path)
        if original in self.by_original:
            logger.debug("Image name %s registered twice, keeping %s", original, stored_path)
        self.by_original[original] = url
        self.display[stored_path] = url
        self.display[stored_basename(stored_path)] = url
        return url

    def match(self, target: str) -> Optional[str]:
        if not target:
            return None
        exact = self.by_original.get(target)
        if exact is not None:
            return exact
        for name, url in self.by_original.items():
            if not name:
                continue
            if name == target or target in name or name in target:
                return url
        return None


def resolve_images(rows: Iterable[Mapping[str, str]], index: ImageIndex) -> Dict[str, str]:
    """Build the ``images`` mapping of a preview.

    Starts from the index's display keys and adds one entry per resolved row,
    keyed by the row's target name. Rows whose ``has_image`` is not exactly
    ``"TRUE"`` are skipped; unresolved rows get no entry.
    """
    images = dict(index.display)
    if not len(index):
        return images
    unresolved = 0
    for row in rows:
        if not wants_image(row):
            continue
        target = target_name(row.get(IMAGE_PATH_COLUMN))
        if not target:
            continue
        url = index.match(target)
        if url is None:
            unresolved += 1
            continue
        images[target] = url
    if unresolved:
        logger.info("%d flagged row(s) had no matching uploaded image", unresolved)
    return images
