from pathlib import Path

import pytest

from print_simple import cli
from print_simple.files import WatchSetupError


def _write(path: Path, text: str) -> Path:
    path.write_text(text.strip() + "\n", encoding="utf-8")
    return path


def test_show_config_masks_api_key(tmp_path: Path, capsys) -> None:
    config_path = _write(
        tmp_path / "print-simple.cfg",
        """
[printer ender3]
url = http://octopi-ender.local
api_key = ABC123
gcode_dir = /srv/gcode/ender3
        """,
    )

    assert cli.main(["--config", str(config_path), "show-config"]) == 0

    output = capsys.readouterr().out
    assert "[printer ender3]" in output
    assert "api_key = ********" in output
    assert "ABC123" not in output


def test_invalid_configuration_exits_with_code_two(tmp_path: Path, capsys) -> None:
    config_path = _write(
        tmp_path / "print-simple.cfg",
        """
[printer ender3]
gcode_dir = /srv/gcode/ender3
        """,
    )

    assert cli.main(["-c", str(config_path), "start"]) == 2
    assert "missing 'url'" in capsys.readouterr().err


def test_watch_setup_failure_exits_with_code_one(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_start(config=None):
        raise WatchSetupError("G-code directory does not exist: /nowhere")

    monkeypatch.setattr(cli.PrintSimpleApp, "start", failing_start)

    assert cli.main(["-c", str(tmp_path / "absent.cfg"), "start"]) == 1


def test_start_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        cli.main([])


def test_non_numeric_port_exits_with_code_two(tmp_path: Path, capsys) -> None:
    config_path = _write(tmp_path / "print-simple.cfg", "[server]\nport = eighty")

    assert cli.main(["-c", str(config_path), "show-config"]) == 2
    assert "port must be an integer" in capsys.readouterr().err
