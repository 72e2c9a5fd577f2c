"""Run script.

Why it exists:
- Lets `python src/main.py` start the CLI during development.
- Keeps a plain entrypoint next to the installed `plateau-gspatial` script.
"""

from __future__ import annotations

import sys

# Japanese comments and item names break cp1252 consoles on Windows.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
