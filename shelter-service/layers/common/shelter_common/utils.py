from datetime import datetime, timezone
from typing import List

DATETIME_NOW_UTC_FN = lambda: datetime.now(timezone.utc)

def get_content_type_from_extension(extension: str) -> str:
    """Map file extension to MIME type."""
    content_types = {
        'jpg': 'image/jpeg',
        'jpeg': 'image/jpeg',
        'png': 'image/png',
        'gif': 'image/gif',
        'webp': 'image/webp'
    }
    return content_types.get(extension.lower(), 'application/octet-stream')

def get_extension_from_filename(filename: str) -> str:
    """Return the lower-cased extension of a filename without the dot, or an empty string."""
    name = (filename or "").strip()
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].strip().lower()

def split_personality(value: str) -> List[str]:
    """Split the admin form's comma-separated traits, keeping order and dropping blanks."""
    return [trait.strip() for trait in value.split(",") if trait.strip()]
