"""
autodocs.github

GitHub boundary package.

Responsibilities:
- REST API client (commits, trees, blobs, webhooks, user repositories).
- Webhook signature verification and payload models.
"""


# --- Module Notes -----------------------------------------------------------
# The pipeline depends on `GitHubClient`, never on raw HTTP; tests swap the transport.
