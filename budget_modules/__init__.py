"""
Budget modules - application services behind the admin pages.

Each module pairs frozen DTOs (``models.py``) with a service that owns its
transaction boundary and, after committing, triggers page revalidation.
"""
