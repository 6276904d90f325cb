"""Google Drive authentication, API access and folder traversal."""
