"""Symbol artifact resolution.

Maps a symbol URL such as http://whatsinstandard.com/img/xln.svg to a file
under a local root (img/xln.svg) and checks that the file exists. Nothing
here writes to the filesystem.
"""

from __future__ import annotations

from pathlib import Path

BASE_URLS = (
    "http://whatsinstandard.com/",
    "https://whatsinstandard.com/",
)


class ArtifactResolver:
    def __init__(self, root: str | Path = ".", base_urls: tuple[str, ...] = BASE_URLS):
        self.root = Path(root)
        self.base_urls = tuple(base_urls)

    def resolve(self, url: str) -> Path | None:
        """Local path for `url`, or None if it is not under a base URL or escapes the root."""
        for base in self.base_urls:
            if url.startswith(base):
                rel = url[len(base):]
                break
        else:
            return None
        if not rel:
            return None
        path = self.root / rel
        root = self.root.resolve()
        try:
            path.resolve().relative_to(root)
        except ValueError:
            return None
        return path

    def exists(self, path: Path) -> bool:
        return path.is_file()
