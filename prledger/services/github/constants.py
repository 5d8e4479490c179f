"""Constants for the GitHub client."""

GITHUB_API_URL = "https://api.github.com"
GITHUB_GRAPHQL_URL = f"{GITHUB_API_URL}/graphql"
GITHUB_API_VERSION = "2022-11-28"

# Extra second slept past the reported reset time
RATE_LIMIT_RESET_BUFFER_SECONDS = 1.0

MERGED_PULL_REQUESTS_QUERY = """
query($searchQuery: String!, $first: Int!) {
  search(query: $searchQuery, type: ISSUE, first: $first) {
    nodes {
      ... on PullRequest {
        id
        number
        title
        url
        state
        createdAt
        mergedAt
        repository {
          url
          name
          owner {
            login
          }
        }
        author {
          login
        }
      }
    }
  }
}
"""
