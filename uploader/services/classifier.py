"""Classification of multipart form parts."""

from beartype import beartype

from uploader.models.core import PartKind

KEY_FIELD = "key"
NO_REDIRECT_FIELD = "noredirect"


@beartype
def classify_part(field_name: str | None, filename: str | None) -> PartKind:
    """Classify one part by its field name and file name.

    The key field wins over everything, even when it carries a file name.
    Only parts with a non-empty file name are payloads.
    """
    if field_name == KEY_FIELD:
        return PartKind.AUTH_KEY
    if field_name == NO_REDIRECT_FIELD:
        return PartKind.REDIRECT_FLAG
    if filename:
        return PartKind.FILE_PAYLOAD
    return PartKind.IGNORE
