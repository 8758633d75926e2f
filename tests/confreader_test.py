import json
from pathlib import Path

import pytest

from arkade.configure import DEFAULT_CONFIG
from arkade.confreader import ConfReader


def test_read_fills_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"interface": "eth0", "ports": "25565/tcp"}))

    data = ConfReader(str(path)).read()

    assert data["interface"] == "eth0"
    assert data["ports"] == "25565/tcp"
    assert data["window"] == DEFAULT_CONFIG["window"]
    assert data["colors"] is True


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as e:
        ConfReader(str(tmp_path / "missing.json"))
    assert e.value.code == 1


@pytest.mark.parametrize("content", [
    "{not json",
    "[1, 2, 3]",
])
def test_malformed_file(tmp_path: Path, content: str,
                        capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "config.json"
    path.write_text(content)

    with pytest.raises(SystemExit) as e:
        ConfReader(str(path)).read()

    assert e.value.code == 1
    assert "malformed config file" in capsys.readouterr().err


def test_print(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"interface": "eth0"}))

    conf = ConfReader(str(path))
    conf.read()
    conf.print()

    out = capsys.readouterr().out
    assert str(path) in out
    assert "interface: eth0" in out
