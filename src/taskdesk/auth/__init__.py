"""Authentication and authorization.

Users sign in with email/password and receive a bearer JWT carrying
their id and role. Every protected request resolves that token to a
Caller, and the access policy decides what the Caller may see or change.
"""
