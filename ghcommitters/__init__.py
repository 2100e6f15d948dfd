"""gh-committers: committer identity discovery for a GitHub account.

Walks every repository an account has committed to, every branch of those
repositories and the account's commit history on each branch through the
GitHub GraphQL API, and reports the distinct name/email pairs it committed as.
"""

__version__ = "0.1.0"
