"""Media kind classification from file names and declared content types."""

from __future__ import annotations

from enum import Enum


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    CODE = "code"
    ARCHIVE = "archive"
    OTHER = "other"

    @property
    def streamable(self) -> bool:
        """Whether uploads of this kind use the gentler chunked plan."""
        return self in STREAMABLE_KINDS

    @classmethod
    def from_name(cls, name: str, content_type: str | None = None) -> "MediaKind":
        """Classify by extension first, then by the content type's major type."""
        stem, dot, extension = (name or "").rpartition(".")
        if dot and stem:
            kind = _EXTENSIONS.get(extension.lower())
            if kind is not None:
                return kind
        if content_type:
            major = content_type.split("/", 1)[0].strip().lower()
            return _CONTENT_TYPE_MAJORS.get(major, cls.OTHER)
        return cls.OTHER


STREAMABLE_KINDS = frozenset({MediaKind.VIDEO})

_EXTENSIONS: dict[str, MediaKind] = {
    **dict.fromkeys(
        ("jpg", "jpeg", "png", "gif", "webp", "svg", "bmp", "tiff", "ico"),
        MediaKind.IMAGE,
    ),
    **dict.fromkeys(
        (
            "mp4", "webm", "ogg", "mov", "avi", "mkv", "flv", "wmv", "m4v", "3gp",
        ),
        MediaKind.VIDEO,
    ),
    **dict.fromkeys(("mp3", "wav", "oga", "aac", "flac"), MediaKind.AUDIO),
    **dict.fromkeys(
        ("pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "rtf"),
        MediaKind.DOCUMENT,
    ),
    **dict.fromkeys(
        (
            "js", "jsx", "ts", "tsx", "html", "css", "json", "xml", "py", "java",
            "c", "cpp", "cs", "go", "php", "rb", "swift",
        ),
        MediaKind.CODE,
    ),
    **dict.fromkeys(("zip", "rar", "7z", "tar", "gz"), MediaKind.ARCHIVE),
}

_CONTENT_TYPE_MAJORS: dict[str, MediaKind] = {
    "image": MediaKind.IMAGE,
    "video": MediaKind.VIDEO,
    "audio": MediaKind.AUDIO,
}
