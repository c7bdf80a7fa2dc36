"""
Extension based file categories.

Every extension maps to exactly one category; anything unknown lands in
Others. The table is static so classification never fails.
"""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Union


class FileCategory(str, Enum):
    """Category folder a file belongs in."""

    DOCUMENTS = "Documents"
    IMAGES = "Images"
    VIDEOS = "Videos"
    AUDIO = "Audio"
    INSTALLERS = "Installers"
    ARCHIVES = "Archives"
    CODE = "Code"
    OTHERS = "Others"


# fmt: off
_CATEGORY_EXTENSIONS: Dict[FileCategory, List[str]] = {
    FileCategory.DOCUMENTS: [
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt",
        ".rtf", ".odt", ".ods", ".odp", ".csv", ".md", ".epub", ".mobi",
    ],
    FileCategory.IMAGES: [
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".svg", ".webp", ".ico",
        ".tiff", ".tif", ".psd", ".ai", ".eps", ".raw", ".cr2", ".nef",
        ".heic", ".heif",
    ],
    FileCategory.VIDEOS: [
        ".mp4", ".avi", ".mkv", ".mov", ".wmv", ".flv", ".webm", ".m4v",
        ".mpeg", ".mpg", ".3gp", ".vob",
    ],
    FileCategory.AUDIO: [
        ".mp3", ".wav", ".flac", ".aac", ".ogg", ".wma", ".m4a", ".aiff",
        ".ape", ".alac", ".mid", ".midi",
    ],
    FileCategory.INSTALLERS: [
        ".exe", ".msi", ".dmg", ".pkg", ".deb", ".rpm", ".appimage", ".snap",
        ".flatpak", ".apk", ".ipa",
    ],
    FileCategory.ARCHIVES: [
        ".zip", ".rar", ".7z", ".tar", ".gz", ".bz2", ".xz", ".iso", ".img",
        ".cab", ".arj", ".lzh",
    ],
    FileCategory.CODE: [
        ".js", ".ts", ".jsx", ".tsx", ".py", ".java", ".c", ".cpp", ".cc",
        ".h", ".hpp", ".cs", ".go", ".rs", ".rb", ".php", ".swift", ".kt",
        ".scala", ".r", ".m", ".mm", ".sql", ".sh", ".bash", ".ps1", ".bat",
        ".cmd", ".html", ".htm", ".css", ".scss", ".sass", ".less", ".json",
        ".xml", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".conf", ".vue",
        ".svelte", ".astro",
    ],
}
# fmt: on

EXTENSION_CATEGORIES: Dict[str, FileCategory] = {
    ext: category
    for category, extensions in _CATEGORY_EXTENSIONS.items()
    for ext in extensions
}


def get_extension(file_path: Union[str, Path]) -> str:
    """Lowercased extension including the leading dot ("" if none)."""
    return Path(file_path).suffix.lower()


def categorize(file_path: Union[str, Path]) -> FileCategory:
    """
    Get the category for a file based on its extension.

    Args:
        file_path: File path or name

    Returns:
        Matching category, FileCategory.OTHERS when unknown
    """
    return EXTENSION_CATEGORIES.get(get_extension(file_path), FileCategory.OTHERS)


def all_categories() -> List[FileCategory]:
    """All categories in display order."""
    return list(FileCategory)


def category_names() -> List[str]:
    """Folder names of all categories."""
    return [category.value for category in FileCategory]


def extensions_for_category(category: Union[FileCategory, str]) -> List[str]:
    """
    Get all extensions that map to a category.

    Args:
        category: Category member or its folder name

    Returns:
        Extensions (with leading dot); empty for Others
    """
    return list(_CATEGORY_EXTENSIONS.get(FileCategory(category), []))
