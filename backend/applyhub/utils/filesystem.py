from pathlib import Path
from applyhub.config import settings


def ensure_data_dirs(data_path: Path | None = None) -> Path:
    path = data_path or settings.data_path
    path.mkdir(parents=True, exist_ok=True)
    (path / "documents").mkdir(exist_ok=True)
    return path


def sanitize_filename(name: str) -> str:
    keep = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789._-")
    return "".join(c if c in keep else "_" for c in name)


def file_extension(name: str) -> str:
    return Path(name).suffix.lstrip(".").lower()


def display_name(name: str) -> str:
    """Last path component of a client-supplied name, without surrounding whitespace."""
    base = name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    return "" if base in (".", "..") else base
