#!/usr/bin/env python3
"""
Mint an access token for an operator. Use for manual calls against the API
and for the monthly billing job when it is driven from outside the app.

Usage:
  python scripts/issue_token.py <subject> [owner|staff] [--minutes N]
  # Requires SECRET_KEY and DATABASE_URL in .env (or export)
"""
import argparse
import os
import sys
from datetime import timedelta

from dotenv import load_dotenv

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(_root, ".env"))

# Add project root to path
sys.path.insert(0, _root)

from kinderledger.core.security import create_access_token, ROLES, ROLE_OWNER  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Issue a kinderledger access token")
    parser.add_argument("subject", help="Caller id stored in the 'sub' claim")
    parser.add_argument("role", nargs="?", default=ROLE_OWNER, choices=ROLES)
    parser.add_argument("--minutes", type=int, default=None, help="Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES")
    args = parser.parse_args()

    if not os.getenv("SECRET_KEY"):
        print("ERROR: SECRET_KEY must be set. Add to .env or export.")
        sys.exit(1)

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    print(create_access_token({"sub": args.subject, "role": args.role}, expires_delta=expires))


if __name__ == "__main__":
    main()
