"""
Colorify terminal output.
"""


import os
import sys
from typing import Final

__all__ = [
    "disable_colors",
    "supports_colors",
    "Color",
]


_on = True


def disable_colors() -> None:
    global _on
    _on = False


def supports_colors() -> bool:
    """
    Check if ANSI colors are supported.

    Returns
    -------
    bool
        True if ANSI colors are enabled and stdout is a terminal.
    """
    if not _on or "NO_COLOR" in os.environ:
        return False

    is_a_tty = hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
    return os.name != "nt" and is_a_tty


class Color:
    """
    Colorify terminal output.
    """

    ANSI_COLORS: Final = {
        "red": "\x1b[0;31m",
        "green": "\x1b[0;32m",
        "yellow": "\x1b[0;33m",
        "blue": "\x1b[0;34m",
        "cyan": "\x1b[0;36m",
        "gray": "\x1b[0;38;5;240m",
        "light_blue": "\x1b[0;94m",
        "light_yellow": "\x1b[0;93m",
        "normal": "\x1b[0m",
        "bold": "\x1b[1m",
    }

    @staticmethod
    def red(msg: str, /) -> str:
        return Color.color(msg, "red")

    @staticmethod
    def green(msg: str, /) -> str:
        return Color.color(msg, "green")

    @staticmethod
    def yellow(msg: str, /) -> str:
        return Color.color(msg, "yellow")

    @staticmethod
    def blue(msg: str, /) -> str:
        return Color.color(msg, "blue")

    @staticmethod
    def bold(msg: str, /) -> str:
        return Color.color(msg, "bold")

    @staticmethod
    def color(msg: object, color_or_colors: str | None = None, /) -> str:
        """
        Color a message using one or more space separated ANSI color names,
        e.g. "red bold".

        Parameters
        ----------
        msg : object
            Value to be colored, converted with `str`.

        color_or_colors : str | None
            Color name or names. (default None)

        Returns
        -------
        str
            Colorified `msg`, or plain `msg` if colors are not supported.
        """
        if color_or_colors is None or not supports_colors():
            return str(msg)

        colors = Color.ANSI_COLORS
        text = [colors[c] for c in color_or_colors.split() if c in colors]

        if not text:
            return str(msg)

        text.append(str(msg))
        text.append(colors["normal"])

        return "".join(text)
