import sys

import pytest
from PIL import Image

from roomcheck import cli


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["roomcheck", *argv])
    cli.main()


def test_compress_writes_bounded_jpeg(monkeypatch, tmp_path, jpeg_bytes, capsys):
    src = tmp_path / "room.jpg"
    src.write_bytes(jpeg_bytes)
    out = tmp_path / "small.jpg"

    _run(monkeypatch, "compress", str(src), "--out", str(out), "--max-width", "640")
    assert "image/jpeg" in capsys.readouterr().out
    with Image.open(out) as img:
        assert img.size == (640, 480)


def test_compress_rejects_non_image(monkeypatch, tmp_path):
    src = tmp_path / "notes.txt"
    src.write_text("hello")
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "compress", str(src))
    assert exc.value.code == 1


def test_resolve_with_mock_backend(monkeypatch, capsys):
    _run(monkeypatch, "resolve", "Ue905-B503")
    out = capsys.readouterr().out
    assert "room B503" in out
    assert "9 areas" in out


def test_inbox_lists_demo_flows(monkeypatch, capsys):
    _run(monkeypatch, "inbox")
    out = capsys.readouterr().out
    assert "B503" in out
    assert "overdue by 2 days" in out


def test_no_command_prints_help(monkeypatch):
    with pytest.raises(SystemExit):
        _run(monkeypatch)
