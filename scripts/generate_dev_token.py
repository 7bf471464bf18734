#!/usr/bin/env python3
"""
Generate session tokens for local development.
In production the hosted identity provider issues these; locally we sign
them with SESSION_JWT_SECRET so the API and CLI accept them.
"""

import argparse
import uuid

from grievance_portal.api.auth import generate_token


def main():
    parser = argparse.ArgumentParser(description="Mint a development session token.")
    parser.add_argument("--user-id", default=None, help="identity id (default: random UUID)")
    parser.add_argument("--email", default=None)
    parser.add_argument("--hours", type=int, default=24)
    args = parser.parse_args()

    user_id = args.user_id or str(uuid.uuid4())
    token = generate_token(user_id, email=args.email, hours=args.hours)

    print("=" * 70)
    print("Development Session Token")
    print("=" * 70)
    print()
    print(f"  user id: {user_id}")
    print(f"  token:   {token}")
    print()
    print("Register a role for this identity before using role-gated views:")
    print(f"""
curl -X POST http://localhost:8000/api/auth/register \\
     -H "Authorization: Bearer {token}" \\
     -H "Content-Type: application/json" \\
     -d '{{"role": "student", "full_name": "Jane Doe", "user_id_number": "21CS001", "department": "CSE"}}'
""")
    print("=" * 70)


if __name__ == "__main__":
    main()
