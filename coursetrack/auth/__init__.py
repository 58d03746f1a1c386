"""Users, roles and the authenticated caller."""
