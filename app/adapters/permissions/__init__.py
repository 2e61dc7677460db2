"""Role / permission storage adapters.

Roles and permissions are plain records; the many-to-many graph between
users, roles and permissions is kept as id-pair association sets.
"""
