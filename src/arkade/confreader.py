"""
Config file reader.
"""


import json
from pathlib import Path
from typing import Any

from arkade.coloring import Color
from arkade.configure import DEFAULT_CONFIG
from arkade.printing import eprint

__all__ = ["ConfReader"]


class ConfReader:
    """
    Config file reader.
    """

    def __init__(self, file: str, /) -> None:
        self._file = Path(file).expanduser().resolve()
        if not self._file.exists():
            eprint(f"supplied config path does not exist: {self._file}",
                   precedence="error: confreader")

        self._data: dict[str, Any] = {}

    @property
    def path(self) -> Path:
        return self._file

    def read(self) -> dict[str, Any]:
        """
        Read the contents of the config file. Keys missing from the file are
        filled in with their default values.

        Returns
        -------
        dict[str, Any]
            The contents of the config file.
        """
        with self._file.open("r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                eprint(f"malformed config file {self._file}: {e}",
                       precedence="error: confreader")

        if not isinstance(data, dict):
            eprint(f"malformed config file {self._file}: expected an object",
                   precedence="error: confreader")

        self._data = {**DEFAULT_CONFIG, **data}
        return self._data

    def print(self) -> None:
        """
        Print the contents of the config file.
        """

        def json_print(data: Any, indent: int = 0) -> None:
            indent_str = " " * indent

            if isinstance(data, dict):
                if len(data) == 0:
                    print(f"{indent_str}{{}}")

                for key, value in data.items():
                    key_colored = Color.color(key, "cyan")
                    if isinstance(value, (dict, list)):
                        print(f"{indent_str}{key_colored}:")
                        json_print(value, indent + 2)
                    else:
                        value_colored = Color.color(value, "green")
                        print(f"{indent_str}{key_colored}: {value_colored}")
            elif isinstance(data, list):
                if len(data) == 0:
                    print(f"{indent_str}* none")

                for item in data:
                    if isinstance(item, (dict, list)):
                        print(f"{indent_str}-")
                        json_print(item, indent + 2)
                    else:
                        print(f"{indent_str}- {Color.color(item, 'green')}")
            else:
                print(f"{indent_str}{Color.color(data, 'green')}")

        print(f"path: {Color.blue(str(self._file))}", end="\n\n")
        json_print(self._data)
