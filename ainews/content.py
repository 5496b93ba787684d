import re
from datetime import datetime, timezone
from html import escape

from bs4 import BeautifulSoup


def clean_title(title, source_name):
    if not title:
        return ""
    cleaned = title.strip()
    if source_name:
        suffix = f" - {source_name}"
        if cleaned.endswith(suffix):
            cleaned = cleaned[:-len(suffix)]
    return cleaned.strip()


def clean_text(raw):
    if not raw:
        return ""
    soup = BeautifulSoup(raw, "html.parser")
    text = soup.get_text(separator=" ")
    return re.sub(r'\s+', ' ', text).strip()


def to_html_fragment(raw):
    """Wrap plain text into <p> paragraphs; markup is passed through as-is."""
    if not raw:
        return ""
    soup = BeautifulSoup(raw, "html.parser")
    if soup.find():
        return raw
    paragraphs = [re.sub(r'\s+', ' ', para).strip() for para in raw.splitlines() if para.strip()]
    return "".join(f"<p>{escape(para)}</p>" for para in paragraphs)


def parse_timestamp(value):
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    for candidate in (text, text.replace(" ", "T", 1)):
        try:
            dt = datetime.fromisoformat(candidate)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    return None


def format_time(value):
    dt = parse_timestamp(value)
    if dt is None:
        return value or ""
    return dt.strftime("%m-%d %H:%M")


def format_relative_time(value, now=None):
    dt = parse_timestamp(value)
    if dt is None:
        return value or ""
    now = now or datetime.now(timezone.utc)
    hours = int((now - dt).total_seconds() // 3600)
    if hours < 1:
        return "just now"
    if hours < 24:
        return f"{hours} hours ago"
    if hours < 48:
        return "yesterday"
    return format_time(value)


def to_iso(dt):
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
