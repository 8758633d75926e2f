"""
Command-line flag parsing.
"""


from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, NoReturn, override

from arkade.coloring import Color
from arkade.exitcode import ExitCode

__all__ = [
    "FlagParser",
    "FlagHelpFormatter",
    "PositionalFlag",
    "OptionFlag",
    "Group",
]


@dataclass(frozen=True, kw_only=True)
class PositionalFlag:
    help: str = "this option lacks documentation"
    nargs: int | str | None = None
    type: Callable[[str], Any] | None = None
    default: Any | None = None
    metavar: str | None = None


@dataclass(frozen=True, kw_only=True)
class OptionFlag:
    short: str | None = None
    long: str | None = None
    action: str | type[argparse.Action] | None = None
    nargs: int | str | None = None
    const: Any | None = None
    help: str = "this option lacks documentation"
    type: Callable[[str], Any] | None = None
    required: bool | None = None
    default: Any | None = None
    choices: Iterable[Any] | None = None
    metavar: str | tuple[str, ...] | None = None
    version: str | None = None


@dataclass(frozen=True, kw_only=True)
class Group:
    description: str | None = None
    arguments: dict[str, PositionalFlag | OptionFlag | Group]


class FlagHelpFormatter(argparse.HelpFormatter):
    """
    Same as `argparse.HelpFormatter`, but section headings are colored and a
    metavar is only shown next to the long form of a flag:

        -i, --interface <name>
    """

    def __init__(
            self,
            prog: str,
            indent_increment: int = 2,
            max_help_position: int = 40,
            width: int | None = 100,
    ) -> None:
        super().__init__(prog, indent_increment=indent_increment,
                         max_help_position=max_help_position, width=width)

    @override
    def start_section(self, heading: str | None) -> None:
        if heading is not None:
            heading = Color.color(heading, "green bold")
        super().start_section(heading)

    @override
    def _format_action_invocation(self, action: argparse.Action) -> str:
        # positional
        if not action.option_strings:
            default = self._get_default_metavar_for_positional(action)
            metavar, = self._metavar_formatter(action, default)(1)
            return metavar

        # optional with no arguments
        if action.nargs == 0:
            return ", ".join(action.option_strings)

        default = f"<{self._get_default_metavar_for_optional(action).lower()}>"
        args_string = self._format_args(action, default)
        parts: list[str] = []

        for option_string in action.option_strings:
            # -i, --interface <name>
            # -i <name>
            if option_string.startswith("--") or len(action.option_strings) == 1:
                parts.append(f"{option_string} {args_string}")
            else:
                parts.append(option_string)

        return ", ".join(parts)


class FlagParser(argparse.ArgumentParser):
    """
    Command line argument parser.
    """

    def __init__(
            self,
            prog: str | None = None,
            usage: str | None = None,
            description: str | None = None,
            epilog: str | None = None,
            parents: Sequence[argparse.ArgumentParser] | None = None,
            formatter_class: type[argparse.HelpFormatter] = FlagHelpFormatter,
            add_help: bool = True,
            exit_on_error: bool = True,
    ) -> None:
        super().__init__(prog=prog, usage=usage, description=description,
                         epilog=epilog, parents=list(parents or []),
                         formatter_class=formatter_class, add_help=add_help,
                         exit_on_error=exit_on_error)

    def add_arguments(
            self,
            arguments: dict[str, PositionalFlag | OptionFlag | Group],
            *,
            _add_argument_callback: Any | None = None,
    ) -> None:
        """
        Add flags described by a mapping of destination names to flag specs.

        Parameters
        ----------
        arguments : dict[str, PositionalFlag | OptionFlag | Group]
            The key is used as `dest` for options and as the name of
            positionals. Groups are added as argument groups, keyed by title.

        _add_argument_callback : Any | None
            Implementation detail used for groups. Do not pass it.
        """
        add = self.add_argument if _add_argument_callback is None else _add_argument_callback

        for dest, flag in arguments.items():
            try:
                if isinstance(flag, Group):
                    group = self.add_argument_group(dest, flag.description)
                    if flag.arguments:
                        self.add_arguments(flag.arguments,
                                           _add_argument_callback=group.add_argument)
                elif isinstance(flag, PositionalFlag):
                    kwargs = {
                        "nargs": flag.nargs,
                        "type": flag.type,
                        "help": flag.help,
                        "default": flag.default,
                        "metavar": flag.metavar,
                    }
                    add(dest, **{k: v for k, v in kwargs.items() if v is not None})
                else:
                    if flag.short is None and flag.long is None:
                        raise ValueError(f"neither short nor long flag was supplied for '{dest}'")

                    flags = [f for f in (flag.short, flag.long) if f is not None]
                    kwargs = {
                        "action": flag.action,
                        "nargs": flag.nargs,
                        "const": flag.const,
                        "type": flag.type,
                        "required": flag.required,
                        "default": flag.default,
                        "choices": flag.choices,
                        "help": flag.help,
                        "metavar": flag.metavar,
                        "dest": dest,
                        "version": flag.version,
                    }
                    add(*flags, **{k: v for k, v in kwargs.items() if v is not None})
            except argparse.ArgumentError as e:
                self.error(e.message)

    @override
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        precedence = f"{Color.red(Color.bold('error'))}: {Color.red(Color.bold(self.prog))}"
        self.exit(ExitCode.USAGE.value, f"{precedence}: {message}\n")
