"""Plain-text renditions of question markdown/HTML for lists and search."""
import re

from bs4 import BeautifulSoup

CODE_FENCE = re.compile(r"```[\s\S]*?```")
BULLET = re.compile(r"^[ \t]*[*\-][ \t]+", re.MULTILINE)
WHITESPACE = re.compile(r"\s+")


def format_question_text(text: str | None) -> str:
    if not text:
        return ""
    formatted = CODE_FENCE.sub("\n[Code Block]\n", text)
    formatted = BULLET.sub("• ", formatted)
    return formatted.strip()


def plain_text(text: str | None) -> str:
    """Drop code blocks, bullet markers and HTML tags; collapse whitespace."""
    if not text:
        return ""
    stripped = CODE_FENCE.sub("\n", text)
    stripped = BULLET.sub("", stripped)
    stripped = BeautifulSoup(stripped, "html.parser").get_text(" ")
    return WHITESPACE.sub(" ", stripped).strip()


def preview(text: str | None, width: int = 80) -> str:
    flat = plain_text(text)
    if len(flat) <= width:
        return flat
    return flat[: max(width - 1, 0)].rstrip() + "…"


def image_urls(text: str | None) -> list[str]:
    """Absolute or data: image sources referenced by <img> tags."""
    if not text:
        return []
    soup = BeautifulSoup(text, "html.parser")
    urls = []
    for img in soup.find_all("img"):
        src = img.get("src") or ""
        if src.startswith("data:image") or src.startswith("http"):
            urls.append(src)
    return urls
