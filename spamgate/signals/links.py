import re
from typing import List

# Dotted words that look like domains but are file names or languages.
# Only consulted for bare matches without a "www." prefix.
FILE_EXTENSIONS = frozenset(
    """
    js jsx ts tsx py rb go rs java kt cs cpp php pl sh bat ps1 vue
    html htm css scss json xml yml yaml toml ini cfg conf log md rst txt csv
    pdf doc docx xls xlsx ppt pptx odt rtf
    png jpg jpeg gif svg webp bmp ico tif tiff
    mp3 mp4 mov avi mkv wav flac ogg webm
    zip rar gz tgz tar bz2 xz dmg iso exe msi dll so apk jar bak tmp
    """.split()
)

# Scheme-prefixed links are tried first so they are never counted twice.
LINK_REGEX = re.compile(
    r"(?P<scheme>(?:https?|ftp)://[^\s<>\"']+)"
    r"|"
    r"(?<![@\w.-])(?![\w.-]*@)"
    r"(?P<bare>"
    r"(?P<www>www\.)?(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+"
    r"(?P<tld>[a-z]{2,24})\b"
    r"(?:/[^\s<>\"']*)?"
    r")",
    re.IGNORECASE,
)


def _is_link(match: "re.Match") -> bool:
    if match.group("scheme") or match.group("www"):
        return True
    return match.group("tld").lower() not in FILE_EXTENSIONS


def find_links(text: str) -> List[str]:
    """Return every URL-like substring, in order, duplicates included."""
    if not text or not isinstance(text, str):
        return []
    return [match.group(0) for match in LINK_REGEX.finditer(text) if _is_link(match)]


def count_links(text: str) -> int:
    return len(find_links(text))
