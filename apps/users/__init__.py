"""Users app package.

Defines the custom user model (``apps.users.models.CustomUser``, the
project's AUTH_USER_MODEL) with marketplace roles, the verification flags
consulted before booking and the wallet balance used by wallet payments.
"""
