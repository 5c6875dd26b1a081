"""issue-moderator: rule-based moderation of Jira issues.

Rule modules inspect an issue snapshot and stage changes on its pending
overlay; the reconciliation engine turns those changes into the minimal set
of remote operations and the synchronizer applies them through a gateway.
"""

__version__ = "0.1.0"
