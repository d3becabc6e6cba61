"""
Seed data for users.
One owner and two staff accounts; resellers sign up on their own.
"""

USERS = [
    # ── Owner ───────────────────────────────────────────────────────────────
    {
        "email": "owner@orderdesk.dev",
        "name": "Desk Owner",
        "role": "owner",
    },
    # ── Staff ───────────────────────────────────────────────────────────────
    {
        "email": "amira@orderdesk.dev",
        "name": "Amira Haddad",
        "role": "staff",
    },
    {
        "email": "tomas@orderdesk.dev",
        "name": "Tomas Lindqvist",
        "role": "staff",
    },
]
