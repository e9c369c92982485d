"""Create a routed session and print a moderator token for it.

Credentials come from ``OPENTOK_API_KEY``/``OPENTOK_API_SECRET`` or the
``opentok`` section of ``~/.opentok.yaml``.
"""

from __future__ import annotations

import argparse
import logging

from opentok import OpenTok, Role
from opentok.config import load_opentok_config, load_token_policy


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--location", help="IPv4 address hint for session placement")
    parser.add_argument("--p2p", action="store_true", help="Relay media directly between peers")
    parser.add_argument("--data", help="Connection data embedded in the token")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = load_opentok_config(config_path=args.config)
    opentok = OpenTok.from_config(config, token_policy=load_token_policy(config_path=args.config))

    session = opentok.create_session(p2p=args.p2p, location=args.location)
    token = session.generate_token(role=Role.MODERATOR, connection_data=args.data)

    print(f"session_id: {session.session_id}")
    print(f"token:      {token}")


if __name__ == "__main__":
    main()
