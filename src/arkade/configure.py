import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

__all__ = ["DEFAULT_CONFIG_DIR", "DEFAULT_CONFIG", "configure", "is_configured"]


DEFAULT_CONFIG_DIR: Final = "~/.config/arkade"

# Default config data
DEFAULT_CONFIG: Final[dict[str, Any]] = {
    "interface": None,
    "ports": "",
    "window": 5.0,
    "exec": None,
    "colors": True,
    "log": True,
    "log_path": f"{DEFAULT_CONFIG_DIR}/logs",
    "log_max_size": 512 * 1024,
}


def is_configured(dest_dir: str | None = None) -> bool:
    if dest_dir is None:
        dest_dir = DEFAULT_CONFIG_DIR
    return Path(f"{dest_dir}/.arkadecfgok").expanduser().resolve().exists()


@dataclass(frozen=True)
class _PathSpec:
    path: str
    type: Literal["dir", "file"]


def configure(dest_dir: str | None = None) -> None:
    """
    Populate the config directory and write the default config file.

    Parameters
    ----------
    dest_dir : str | None
        Config directory. (default: ~/.config/arkade)
    """
    if dest_dir is None:
        dest_dir = DEFAULT_CONFIG_DIR

    conf_data = dict(DEFAULT_CONFIG)
    if dest_dir != DEFAULT_CONFIG_DIR:
        conf_data["log_path"] = f"{dest_dir}/logs"

    # Directories/files to populate
    paths = [
        _PathSpec(f"{dest_dir}/", "dir"),
        _PathSpec(f"{dest_dir}/config.json", "file"),
        _PathSpec(f"{dest_dir}/logs/", "dir"),
        _PathSpec(f"{dest_dir}/logs/activity.log", "file"),
    ]

    for path in paths:
        if path.type == "dir":
            Path(path.path).expanduser().resolve().mkdir(mode=0o755, parents=True,
                                                         exist_ok=True)
        else:
            Path(path.path).expanduser().resolve().touch(mode=0o644, exist_ok=True)

    with Path(f"{dest_dir}/config.json").expanduser().resolve().open("w") as f:
        f.write(json.dumps(conf_data, indent=2))

    Path(f"{dest_dir}/.arkadecfgok").expanduser().resolve().touch(mode=0o644, exist_ok=True)
