"""Run script.

Why it exists:
- Allows running the CLI with `python -m main` from `src/` during development.
- Keeps a simple entry point next to the installed `unifi-auth-test` script.
"""

from __future__ import annotations

import sys

# Workaround for UnicodeEncodeError on Windows terminals (cp1252 vs utf-8);
# the progress output contains check marks.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
