from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from poggit.core.errors import GitHubApiError, ReleaseSubmitError
from poggit.infrastructure.github.client import GitHubClient

ALLOWED_ICON_MIME_TYPES = {"image/jpeg", "image/gif", "image/png"}
MAX_ICON_SIZE = 256


@dataclass(slots=True)
class IconInfo:
    path: str
    url: str | None
    mime_type: str
    width: int
    height: int


class IconService:
    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def find_icon(self, repo_full_name: str, icon_path: str, sha: str, token: str) -> IconInfo:
        """Fetch and check an icon at a commit; any problem rejects the submission."""
        try:
            icon_file = self.github.get_file(repo_full_name, icon_path, sha, token)
        except GitHubApiError as exc:
            raise ReleaseSubmitError(f"Image cannot be found from {icon_path}") from exc

        try:
            with Image.open(io.BytesIO(icon_file.content)) as image:
                mime_type = Image.MIME.get(image.format or "", "")
                width, height = image.size
        except (UnidentifiedImageError, OSError) as exc:
            raise ReleaseSubmitError(f"File at {icon_path} is of an unsupported format.") from exc

        if mime_type not in ALLOWED_ICON_MIME_TYPES:
            raise ReleaseSubmitError(f"File at {icon_path} contains an image of unsupported format.")
        if width > MAX_ICON_SIZE or height > MAX_ICON_SIZE:
            raise ReleaseSubmitError(
                f"Icon found at {icon_path} must not exceed the dimensions {MAX_ICON_SIZE}x{MAX_ICON_SIZE} px."
            )
        return IconInfo(path=icon_path, url=icon_file.download_url, mime_type=mime_type, width=width, height=height)
