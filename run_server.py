"""Run the local OAuth server (dev helper)."""
from __future__ import annotations

import sys

from aria.cli import serve_auth
from aria.core.config import get_settings, load_env
from aria.core.logging_config import setup_logging


def main() -> None:
    load_env()
    s = get_settings()
    setup_logging(s.log_level, s.log_file)
    sys.exit(serve_auth(s, port=s.port))


if __name__ == "__main__":
    main()
