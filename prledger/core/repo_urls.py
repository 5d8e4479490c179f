"""Canonical GitHub repository URLs.

Registration, the PR search and manual intake all describe the same
repository in slightly different ways (scheme, .git suffix, API URL,
letter case). Everything is reduced to ``https://github.com/<owner>/<repo>``
in lower case before it is stored or compared.
"""

import re
from urllib.parse import urlparse

_API_REPO_PATH = re.compile(r"^/repos/([^/]+)/([^/]+)")


class InvalidRepositoryUrl(ValueError):
    """Raised when a string cannot be read as a GitHub repository URL."""


def canonical_repo_url(url: str) -> str:
    """
    Normalize a GitHub repository URL.

    Accepts web URLs with or without scheme, ``.git`` suffixes, trailing
    slashes and extra path segments, as well as ``api.github.com/repos/...``
    URLs.

    Raises:
        InvalidRepositoryUrl: If the host is not GitHub or owner/repo is missing
    """
    raw = (url or "").strip()
    if not raw:
        raise InvalidRepositoryUrl("Empty repository URL")
    if not raw.lower().startswith(("http://", "https://")):
        raw = f"https://{raw}"

    parsed = urlparse(raw)
    host = (parsed.hostname or "").lower()

    if host == "api.github.com":
        match = _API_REPO_PATH.match(parsed.path)
        if not match:
            raise InvalidRepositoryUrl(f"Not a repository API URL: {url}")
        owner, repo = match.group(1), match.group(2)
    elif host == "github.com" or host.endswith(".github.com"):
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) < 2:
            raise InvalidRepositoryUrl(f"Invalid repository URL format: {url}")
        owner, repo = parts[0], parts[1]
    else:
        raise InvalidRepositoryUrl(f"Not a GitHub repository URL: {url}")

    if repo.lower().endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        raise InvalidRepositoryUrl(f"Invalid repository URL format: {url}")

    return f"https://github.com/{owner}/{repo}".lower()
