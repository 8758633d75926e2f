"""
Read, write, print activity log files.
"""


import datetime
from pathlib import Path
from typing import Final, Literal

from arkade.coloring import Color
from arkade.printing import Assets

__all__ = ["ACTIVITY_LOG", "LogRWP"]


ACTIVITY_LOG: Final = "activity.log"

_DATEFMT: Final = "%Y-%m-%d %I:%M:%S %p"


class LogRWP:
    """
    Read, write, print log files kept in a single directory.
    """

    def __init__(
            self,
            path: str,
            mode: Literal["read", "write"],
            /,
            *,
            max_size: int = -1,
    ) -> None:
        self._logdir_path = Path(path).expanduser().resolve()
        self._mode = mode
        self._max_size = max_size

    def write(self, name: str, msg: str, /) -> int:
        """
        Append a message to a log file, prefixed with the current date.

        Parameters
        ----------
        name : str
            File to which write a message. Created if it does not exist.

        msg : str
            Message to write.

        Returns
        -------
        int
            The number of characters written, 0 if the log is not opened
            for writing.
        """
        if self._mode != "write":
            return 0

        self._logdir_path.mkdir(mode=0o755, parents=True, exist_ok=True)
        fpath = self._logdir_path / name

        # Start over once the file grows past the limit
        if (self._max_size > 0 and fpath.is_file()
                and fpath.stat().st_size >= self._max_size):
            fpath.unlink()

        datefmt = datetime.datetime.today().strftime(_DATEFMT)
        fmt = f"[{datefmt}]: {msg}\n"

        with fpath.open("a+") as f:
            return f.write(fmt)

    def lines(self, name: str, /) -> list[tuple[str, str]]:
        """
        Read a log file.

        Parameters
        ----------
        name : str
            Name of the log file to read.

        Returns
        -------
        list[tuple[str, str]]
            (date, message) pairs in the order they were written. Empty if the
            file does not exist or the log is not opened for reading.
        """
        if self._mode != "read":
            return []

        fpath = self._logdir_path / name

        if not fpath.is_file():
            return []

        entries = []

        with fpath.open("r") as f:
            for line in f:
                line = line.rstrip("\n")
                if not line:
                    continue
                date, sep, msg = line.partition("]: ")
                if not sep:
                    continue
                entries.append((date.lstrip("["), msg))

        return entries

    def print(self, name: str, /) -> None:
        """
        Print the contents of a log file.

        Parameters
        ----------
        name : str
            Name of a log file to print.
        """
        entries = self.lines(name)

        if not entries:
            print("there's nothing to print")
            return

        print(f"{f' begin {name} ':{Assets.HORIZONTAL_LINE}^80}")
        for date, msg in entries:
            print(f"{Color.yellow(date)}: {msg}")
        print(f"{f' end {name} ':{Assets.HORIZONTAL_LINE}^80}")
