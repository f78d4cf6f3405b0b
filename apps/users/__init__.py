"""Users app package.

Defines the custom user model used throughout the project. Users log in
with their email and carry one role: renter, owner or admin. Use
``apps.users.models.CustomUser`` as the AUTH_USER_MODEL.
"""
