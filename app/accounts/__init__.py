"""
Accounts application.

Members, their roles (free / premium / admin) and email verification
tokens, plus the member pages under /user/.

Key components:
    - User: email-login user with profile fields and Stripe customer link
    - Role: membership tier referenced by User
    - AccountService: profile edits, role changes, account deletion
    - views: member pages (profile, upgrade, card update, cancel, delete)

Usage:
    from accounts.models import Role, User
    from accounts.services import AccountService
"""
