"""Remote issue tracker access.

Key Components:
    - IssueGateway: Abstract capability interface used by the core
    - SearchPage: One page of search results with its next-page cursor
    - JiraRestGateway: Jira Cloud REST v3 implementation over httpx
    - codec: Conversion between Jira JSON payloads and domain models
"""

from issue_moderator.gateway.base import IssueGateway, SearchPage
from issue_moderator.gateway.jira_rest import JiraRestGateway

__all__ = ["IssueGateway", "JiraRestGateway", "SearchPage"]
