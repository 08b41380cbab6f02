from __future__ import annotations

import html

from poggit.core.errors import GitHubApiError, ReleaseSubmitError, UpstreamError
from poggit.core.files import write_text_atomic
from poggit.infrastructure.github.client import GitHubClient
from poggit.infrastructure.importers.submission_json import ArticleInput
from poggit.infrastructure.resources.store import ResourceStore

MIN_ARTICLE_LENGTH = 10


class ArticleService:
    """Stores human-written release texts as resources."""

    def __init__(self, resource_store: ResourceStore, github: GitHubClient) -> None:
        self.resource_store = resource_store
        self.github = github

    def store_article(
        self,
        article: ArticleInput,
        repo_full_name: str,
        token: str,
        field: str | None = None,
    ) -> int:
        if field is not None and len(article.text) < MIN_ARTICLE_LENGTH:
            raise ReleaseSubmitError(f"Please write a proper {field} for your plugin! Your {field} is far too short!")

        if article.type == "txt":
            resource_id, path = self.resource_store.create("txt", "text/plain")
            write_text_atomic(path, html.escape(article.text))
            return resource_id

        if article.type == "md":
            try:
                rendered = self.github.render_markdown(article.text, repo_full_name, token)
            except GitHubApiError as exc:
                raise UpstreamError(f"Could not render {field or 'article'} with GitHub: {exc}") from exc
            resource_id, path = self.resource_store.create("html", "text/html")
            write_text_atomic(path, rendered)
            return resource_id

        raise ReleaseSubmitError(f"Unknown type '{article.type}'")
