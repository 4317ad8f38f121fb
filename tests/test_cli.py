"""Tests for the img-hash-linker command line."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest
from PIL import Image

from conftest import half_split
from img_hash_linker.cli import main

HALF_HASH = "ffffffff00000000"


@pytest.fixture()
def opened(monkeypatch: pytest.MonkeyPatch) -> List[str]:
    """Capture URLs the CLI tries to open."""
    urls: List[str] = []
    monkeypatch.setattr("webbrowser.open", lambda url: urls.append(url) or True)
    return urls


@pytest.fixture()
def shot(save_png) -> Path:
    return save_png(half_split(8), "shot.png")


def test_prints_fingerprint(shot: Path, capsys: pytest.CaptureFixture) -> None:
    assert main([str(shot), "--no-trim"]) == 0
    assert capsys.readouterr().out.strip() == f"Image hash: {HALF_HASH}"


def test_hash_size_option(shot: Path, capsys: pytest.CaptureFixture) -> None:
    assert main([str(shot), "--hash-size", "4"]) == 0
    out = capsys.readouterr().out.strip()
    assert len(out.split(": ")[1]) == 4


def test_env_default_hash_size(shot: Path, capsys: pytest.CaptureFixture, monkeypatch) -> None:
    monkeypatch.setenv("IMG_HASH_LINKER_HASH_SIZE", "2")
    monkeypatch.setenv("IMG_HASH_LINKER_REMOVE_BORDER", "false")
    assert main([str(shot)]) == 0
    assert capsys.readouterr().out.strip() == "Image hash: c"


def test_bad_env_config(shot: Path, capsys: pytest.CaptureFixture, monkeypatch) -> None:
    monkeypatch.setenv("IMG_HASH_LINKER_THRESHOLD", "lots")
    assert main([str(shot)]) == 1
    assert "IMG_HASH_LINKER_THRESHOLD" in capsys.readouterr().err


def test_exact_match_opens_link(shot: Path, write_dict, opened, capsys) -> None:
    dictionary = write_dict(f"hash,link\n{HALF_HASH},https://found.test\n")
    assert main([str(shot), str(dictionary), "--no-trim"]) == 0
    assert capsys.readouterr().out.strip() == "Opening: https://found.test"
    assert opened == ["https://found.test"]


def test_similar_match_shows_proximity(shot: Path, write_dict, opened, capsys) -> None:
    dictionary = write_dict("hash,link\nfffffffe00000000,https://close.test\n")
    assert main([str(shot), str(dictionary), "--no-trim"]) == 0
    assert capsys.readouterr().out.strip() == "Opening: https://close.test (Proximity: 99.95%)"
    assert opened == ["https://close.test"]


def test_no_open_prints_link(shot: Path, write_dict, opened, capsys) -> None:
    dictionary = write_dict(f"hash,link\n{HALF_HASH},https://found.test\n")
    assert main([str(shot), str(dictionary), "--no-trim", "--no-open"]) == 0
    assert capsys.readouterr().out.strip() == "https://found.test"
    assert opened == []


def test_not_found(shot: Path, write_dict, opened, capsys) -> None:
    dictionary = write_dict("hash,link\n00000000ffffffff,https://far.test\n")
    assert main([str(shot), str(dictionary), "--no-trim"]) == 1
    assert f"No link found for hash {HALF_HASH}" in capsys.readouterr().err
    assert opened == []


def test_threshold_option(shot: Path, write_dict, opened, capsys) -> None:
    dictionary = write_dict("hash,link\n00000000ffffffff,https://far.test\n")
    assert main([str(shot), str(dictionary), "--no-trim", "--threshold", "0"]) == 0
    assert opened == ["https://far.test"]


def test_open_failure_is_reported(shot: Path, write_dict, monkeypatch, capsys) -> None:
    monkeypatch.setattr("webbrowser.open", lambda url: False)
    dictionary = write_dict(f"hash,link\n{HALF_HASH},https://found.test\n")
    assert main([str(shot), str(dictionary), "--no-trim"]) == 1
    assert "Failed to open link" in capsys.readouterr().err


def test_invalid_dictionary(shot: Path, write_dict, capsys) -> None:
    dictionary = write_dict("hash,link\nabc,not a url\n")
    assert main([str(shot), str(dictionary)]) == 1
    assert "no valid entries" in capsys.readouterr().err


def test_missing_image(tmp_path: Path, capsys) -> None:
    assert main([str(tmp_path / "missing.png")]) == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_add_creates_dictionary(shot: Path, tmp_path: Path, capsys) -> None:
    dictionary = tmp_path / "links.csv"
    assert main([str(shot), str(dictionary), "--no-trim", "--add", "https://new.test"]) == 0
    assert capsys.readouterr().out.strip() == f"Added: {HALF_HASH} -> https://new.test"
    assert dictionary.read_text(encoding="utf-8") == f"hash,link\n{HALF_HASH},https://new.test\n"


def test_add_rejects_relative_link(shot: Path, tmp_path: Path, capsys) -> None:
    dictionary = tmp_path / "links.csv"
    assert main([str(shot), str(dictionary), "--add", "example.com"]) == 1
    assert not dictionary.exists()


def test_add_requires_dictionary(shot: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        main([str(shot), "--add", "https://x.test"])
    assert exc.value.code == 1


def test_usage_error_exit_code() -> None:
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 1


def test_bad_hash_size_option(shot: Path, capsys) -> None:
    assert main([str(shot), "--hash-size", "9"]) == 1
    assert "hash_size" in capsys.readouterr().err


def test_folder_mode(tmp_path: Path, capsys) -> None:
    folder = tmp_path / "shots"
    (folder / "nested").mkdir(parents=True)
    half_split(8).save(folder / "a.png")
    Image.new("RGB", (8, 8), (128, 128, 128)).save(folder / "nested" / "b.png")
    (folder / "broken.png").write_bytes(b"nope")

    assert main([str(folder), "--no-trim"]) == 0
    captured = capsys.readouterr()
    lines = [line for line in captured.out.splitlines() if line]
    assert lines == [
        f"{(folder / 'a.png').resolve()},{HALF_HASH}",
        f"{(folder / 'nested' / 'b.png').resolve()},{'f' * 16}",
    ]
    assert "Skipped" in captured.err
    assert "1 of 3 images could not be hashed" in captured.err


def test_empty_folder(tmp_path: Path, capsys) -> None:
    assert main([str(tmp_path)]) == 1
    assert "No images found" in capsys.readouterr().err
