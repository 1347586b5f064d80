"""Mint an access token for local development.

Usage:
    python -m scripts.issue_token --user-id 42 --email dana@example.com --role agent
"""

import argparse

from helpdesk.services.token_service import KNOWN_ROLES, TokenService


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a development access token")
    parser.add_argument("--user-id", type=int, required=True, help="Identity user id")
    parser.add_argument("--email", required=True, help="Email claim")
    parser.add_argument("--role", required=True, choices=sorted(KNOWN_ROLES))
    args = parser.parse_args()

    # Minting never touches the revocation list, so no Redis connection is needed.
    token = TokenService().create_access_token(
        user_id=args.user_id, email=args.email, role=args.role
    )
    print(token)


if __name__ == "__main__":
    main()
