"""Entry point for the POS terminal Textual app."""

from __future__ import annotations

from pos_terminal.pos_app import PosApp


def main() -> None:
    """Run the Textual application."""
    PosApp().run()


if __name__ == "__main__":
    main()
