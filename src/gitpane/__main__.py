"""Module entrypoint for `python -m gitpane`."""

from gitpane.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
