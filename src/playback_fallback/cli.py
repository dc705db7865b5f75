from __future__ import annotations

import argparse
import asyncio
import json
import sys

from playback_fallback.config import settings
from playback_fallback.engine.player import probe
from playback_fallback.logs import configure_logging
from playback_fallback.resolve.diagnose import diagnose
from playback_fallback.resolve.tokens import token_provider_for


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="playback-fallback")
    sub = p.add_subparsers(dest="cmd", required=True)

    inspect = sub.add_parser("inspect", help="Classify a video reference and list its playback URLs")
    inspect.add_argument("ref")

    run = sub.add_parser("probe", help="Walk the candidates over the network and report the outcome")
    run.add_argument("ref")

    sub.add_parser("check-config", help="Validate the environment configuration")

    browse = sub.add_parser("browse", help="Open a rendered player page in a headless browser")
    browse.add_argument("url")

    args = p.parse_args(argv)
    configure_logging(settings)

    if args.cmd == "inspect":
        result = diagnose(args.ref, settings, token_provider_for(settings)).to_dict()
    elif args.cmd == "probe":
        result = asyncio.run(probe(args.ref, settings)).to_dict()
    elif args.cmd == "check-config":
        result = settings.validate_environment().to_dict()
    else:
        from playback_fallback.browser.page import check_player

        result = asyncio.run(check_player(args.url, settings))

    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")

    if args.cmd == "check-config" and not result["valid"]:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
