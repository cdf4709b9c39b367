from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

from sigsleuth import cli
from sigsleuth.config import HOME_ENV

WriteFile = Callable[[str, bytes], Path]


def test_cli_table_output(
    signature_file: Path,
    write_file: WriteFile,
    png_bytes: bytes,
    capsys: pytest.CaptureFixture[str],
) -> None:
    target = write_file("image.png", png_bytes)

    exit_code = cli.main([str(target), "--signature-file", str(signature_file)])
    captured = capsys.readouterr()

    assert exit_code == 0
    assert "PUID" in captured.out
    assert "fmt/11" in captured.out
    assert "image.png" in captured.out


def test_cli_json_output_walks_directories(
    signature_file: Path,
    container_signature_file: Path,
    write_file: WriteFile,
    png_bytes: bytes,
    docx_bytes: bytes,
    capsys: pytest.CaptureFixture[str],
) -> None:
    write_file("image.png", png_bytes)
    target = write_file("letter.docx", docx_bytes)

    exit_code = cli.main(
        [
            str(target.parent),
            "--signature-file",
            str(signature_file),
            "--container-signature-file",
            str(container_signature_file),
            "--format",
            "json",
        ]
    )
    captured = capsys.readouterr()

    assert exit_code == 0
    records = [json.loads(line) for line in captured.out.splitlines() if line]
    by_name = {Path(record["payload"]["path"]).name: record["payload"] for record in records}
    assert set(by_name) == {"image.png", "letter.docx"}
    assert [result["puid"] for result in by_name["letter.docx"]["results"]] == ["x-fmt/263", "fmt/412"]


def test_cli_mime_output(
    signature_file: Path,
    write_file: WriteFile,
    png_bytes: bytes,
    capsys: pytest.CaptureFixture[str],
) -> None:
    target = write_file("image.png", png_bytes)

    exit_code = cli.main([str(target), "--signature-file", str(signature_file), "--format", "mime"])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == f"{target}\timage/png; version=1.0"


def test_cli_xml_output(
    signature_file: Path,
    write_file: WriteFile,
    capsys: pytest.CaptureFixture[str],
) -> None:
    target = write_file("notes.txt", b"hello\n")

    exit_code = cli.main([str(target), "--signature-file", str(signature_file), "--format", "xml"])
    out = capsys.readouterr().out

    assert exit_code == 0
    assert "<FileCollection" in out
    assert "<PUID>x-fmt/111</PUID>" in out


def test_cli_settings_file_and_overrides(
    signature_file: Path,
    tmp_path: Path,
    write_file: WriteFile,
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv(HOME_ENV, raising=False)
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"signature_file": signature_file.name}), encoding="utf-8")
    target = write_file("notes.txt", b"hello\n")

    exit_code = cli.main([str(target), "--settings", str(settings), "--no-extensions", "--format", "mime"])

    assert exit_code == 0
    assert capsys.readouterr().out.strip().endswith("application/octet-stream")


def test_cli_reports_missing_path(signature_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["/path/does/not/exist", "--signature-file", str(signature_file)])

    assert exc.value.code == 2
    assert "Path does not exist" in capsys.readouterr().err


def test_cli_requires_signature_source(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main([str(tmp_path)])

    assert exc.value.code == 2
    assert "signature file is required" in capsys.readouterr().err


def test_cli_initialisation_error_exits_with_usage_code(
    tmp_path: Path,
    write_file: WriteFile,
    capsys: pytest.CaptureFixture[str],
) -> None:
    target = write_file("image.png", b"data")

    with pytest.raises(SystemExit) as exc:
        cli.main([str(target), "--signature-file", str(tmp_path / "absent.xml")])

    assert exc.value.code == 2
    assert "not found" in capsys.readouterr().err


def test_cli_exit_code_reflects_failed_files(
    signature_file: Path,
    write_file: WriteFile,
    png_bytes: bytes,
    capsys: pytest.CaptureFixture[str],
) -> None:
    good = write_file("image.png", png_bytes)
    odd = write_file("<odd>.png", png_bytes)

    exit_code = cli.main([str(good), str(odd), "--signature-file", str(signature_file)])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "error:" in captured.err
    assert "fmt/11" in captured.out


def test_cli_rejects_non_positive_workers(signature_file: Path, tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main([str(tmp_path), "--signature-file", str(signature_file), "--workers", "0"])

    assert exc.value.code == 2
