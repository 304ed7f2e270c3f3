#!/usr/bin/env python3
"""
Grants the owner console to a user: sets the `admin` custom claim with the
Firebase Admin SDK and marks `users/{uid}.role` as `owner`.
"""
import sys

from firebase_admin import auth
from google.cloud import firestore as gcf


def set_owner_role(user_email: str) -> bool:
    """Returns True when both the claim and the profile role were written."""
    from khidmaty.config import db

    try:
        user = auth.get_user_by_email(user_email)
    except auth.UserNotFoundError:
        print(f"❌ User not found: {user_email}")
        return False
    print(f"✅ User found: {user.uid} - {user.email}")

    claims = dict(user.custom_claims or {})
    claims["admin"] = True
    auth.set_custom_user_claims(user.uid, claims)
    print(f"✅ Admin claim added to user: {user_email}")

    db.collection("users").document(user.uid).set(
        {"role": "owner", "updatedAt": gcf.SERVER_TIMESTAMP}, merge=True
    )
    print("✅ Profile role set to owner")
    return True


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: khidmaty-set-owner <user_email>")
        return 1

    user_email = args[0].strip()
    print(f"Setting owner role for: {user_email}")
    if not set_owner_role(user_email):
        print("💥 Failed to set owner role")
        return 1
    print("🎉 Owner role set successfully!")
    print("The user will need to sign out and sign in again for the changes to take effect.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
