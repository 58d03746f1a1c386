"""Course catalogue: courses, content items and their cascades."""
