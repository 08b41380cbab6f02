class PoggitError(Exception):
    """Base error for all user-facing Poggit exceptions."""


class ConfigurationError(PoggitError):
    """Raised when configuration is invalid or incomplete."""


class ProjectNotInitializedError(PoggitError):
    """Raised when .poggit metadata is missing."""


class ReleaseSubmitError(PoggitError):
    """Raised when a release submission violates a field-level contract."""


class AuthorizationError(PoggitError):
    """Raised when the actor lacks admin rights on the source repository."""


class UpstreamError(PoggitError):
    """Raised when source control could not be consulted."""


class GitHubApiError(PoggitError):
    """Raised by the GitHub client for transport errors and non-2xx responses."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResourceError(PoggitError):
    """Base error for resource lookups."""

    def __init__(self, resource_id: int, message: str) -> None:
        super().__init__(message)
        self.resource_id = resource_id


class ResourceNotFoundError(ResourceError):
    def __init__(self, resource_id: int) -> None:
        super().__init__(resource_id, f"Resource #{resource_id} not found")


class ResourceExpiredError(ResourceError):
    def __init__(self, resource_id: int, expired_for: int) -> None:
        super().__init__(resource_id, f"Resource #{resource_id} expired {expired_for} seconds ago")
        self.expired_for = expired_for


class BuildArtifactGoneError(ReleaseSubmitError):
    """Raised when the build artifact to release no longer resolves."""


class ArtifactFormatError(ReleaseSubmitError):
    """Raised when a plugin artifact cannot be read or rewritten."""


class PersistenceError(PoggitError):
    """Raised when a release could not be committed."""
