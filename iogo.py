from pathlib import Path
from typing import Union
from urllib.parse import unquote, urlparse


def read(p: Path, mode: str) -> Union[str, bytes]:
    with open(p, mode) as f:
        return f.read()


def binary(p: Path) -> bytes:
    return read(p, "rb")


def url2path(url: str) -> Path:
    """
    Converts a file: URL into a local path.
    E.g. file:///srv/maven%20repo/a.pom -> /srv/maven repo/a.pom
    """
    parts = urlparse(url)
    if parts.scheme != "file":
        raise ValueError(f"Not a file URL: {url}")
    return Path(unquote(parts.path))
