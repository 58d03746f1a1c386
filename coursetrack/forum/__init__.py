"""Course discussion forum: posts and replies."""
