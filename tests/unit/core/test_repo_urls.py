"""Unit tests for GitHub repository URL canonicalisation."""

import pytest

from prledger.core.repo_urls import InvalidRepositoryUrl, canonical_repo_url


class TestCanonicalRepoUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/Acme/Widgets",
            "https://github.com/acme/widgets/",
            "https://github.com/acme/widgets.git",
            "http://github.com/acme/widgets",
            "github.com/acme/widgets",
            "https://www.github.com/acme/widgets/pull/12",
            "https://api.github.com/repos/acme/widgets",
        ],
    )
    def test_variants_collapse_to_one_form(self, url):
        assert canonical_repo_url(url) == "https://github.com/acme/widgets"

    @pytest.mark.parametrize(
        "url",
        ["", "   ", "https://gitlab.com/acme/widgets", "https://github.com/acme", "https://api.github.com/users/acme"],
    )
    def test_rejects_non_repository_urls(self, url):
        with pytest.raises(InvalidRepositoryUrl):
            canonical_repo_url(url)

    def test_invalid_url_is_a_value_error(self):
        with pytest.raises(ValueError):
            canonical_repo_url("not a url")
