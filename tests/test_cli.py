from __future__ import annotations

import pytest

import vidproc.cli as cli
from vidproc.media.probe import ProbeResult


def test_check_passes_when_binaries_exist(monkeypatch):
    monkeypatch.setattr(cli.shutil, "which", lambda name: f"/usr/bin/{name}")
    cli.main(["--check"])


def test_check_fails_when_binaries_are_missing(monkeypatch):
    monkeypatch.setattr(cli.shutil, "which", lambda name: None)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--check"])
    assert excinfo.value.code == 1


def test_probe_missing_file_exits(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["probe", "--file", str(tmp_path / "missing.mp4")])
    assert excinfo.value.code == 2


def test_probe_prints_result(tmp_path, monkeypatch, capsys):
    target = tmp_path / "clip.mp4"
    target.write_bytes(b"x")

    async def fake_probe(self, path):
        return ProbeResult(duration_seconds=6.0, size_bytes=1, format="mov,mp4")

    monkeypatch.setattr(cli.FFprobeMediaProbe, "probe", fake_probe)
    cli.main(["probe", "--file", str(target)])
    assert '"duration_seconds": 6.0' in capsys.readouterr().out


def test_trim_reports_edit_errors(tmp_path):
    target = tmp_path / "clip.mp4"
    target.write_bytes(b"x")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["trim", "--file", str(target), "--out", str(tmp_path / "out.mp4"), "--start", "3", "--end", "1"])
    assert excinfo.value.code == 3


def test_no_command_prints_help():
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 1
