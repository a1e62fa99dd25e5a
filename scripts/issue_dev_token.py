"""Mint a locally signed bearer token for development.

Usage: python scripts/issue_dev_token.py <subject_id> <email> [name]
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from edutrack.config import get_settings
from edutrack.services.identity import SignedTokenVerifier


def main(argv: list[str]) -> int:
    if len(argv) < 3:
        print(__doc__.strip())
        return 1
    settings = get_settings()
    verifier = SignedTokenVerifier(settings.identity_secret, settings.identity_token_ttl_hours)
    name = argv[3] if len(argv) > 3 else None
    print(verifier.issue(argv[1], argv[2], name))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
