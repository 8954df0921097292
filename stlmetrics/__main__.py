"""stlmetrics - inspect and measure binary STL meshes."""

import sys
from typing import Optional

from stlmetrics.cli.app import app


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the stlmetrics CLI."""
    try:
        app(argv)
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
