from __future__ import annotations

import pytest

from sigsleuth.core.mediatype import (
    OCTET_STREAM,
    MediaType,
    media_type_for_result,
    parse_mime_field,
    resolve_media_type,
)
from sigsleuth.core.types import IdentificationResult


def test_empty_results_resolve_to_octet_stream() -> None:
    media_type = resolve_media_type([])

    assert media_type == OCTET_STREAM
    assert media_type.base_type == "application/octet-stream"
    assert dict(media_type.parameters) == {}
    assert str(media_type) == "application/octet-stream"


def test_png_without_version_has_no_parameters() -> None:
    media_type = resolve_media_type([IdentificationResult(name="PNG", mime_type="image/png")])

    assert str(media_type) == "image/png"
    assert dict(media_type.parameters) == {}


def test_puid_fallback_carries_name() -> None:
    result = IdentificationResult(name="Plain Text File", puid="fmt/111")

    media_type = resolve_media_type([result])

    assert media_type.base_type == "application/x-puid-fmt-111"
    assert dict(media_type.parameters) == {"name": "Plain Text File"}


def test_multiple_mime_candidates_take_first_and_version() -> None:
    result = IdentificationResult(
        name="Microsoft Excel 97 Workbook",
        version="97",
        mime_type="application/vnd.ms-excel, application/x-msexcel",
    )

    media_type = resolve_media_type([result])

    assert media_type.base_type == "application/vnd.ms-excel"
    assert dict(media_type.parameters) == {"version": "97"}


def test_version_only_attached_for_single_result() -> None:
    first = IdentificationResult(name="PDF 1.4", version="1.4", mime_type="application/pdf")
    second = IdentificationResult(name="PDF", mime_type="application/pdf")

    assert "version" in resolve_media_type([first]).parameters
    assert "version" not in resolve_media_type([first, second]).parameters


def test_existing_version_parameter_is_kept() -> None:
    result = IdentificationResult(name="X", version="2", mime_type="text/x-demo; version=1")

    assert resolve_media_type([result]).parameters["version"] == "1"


def test_blank_version_not_attached() -> None:
    result = IdentificationResult(name="X", version="", mime_type="text/plain")

    assert "version" not in resolve_media_type([result]).parameters


def test_only_first_result_drives_base_type() -> None:
    results = [
        IdentificationResult(name="ZIP Format", puid="x-fmt/263", mime_type="application/zip"),
        IdentificationResult(name="Word", puid="fmt/412", mime_type="application/msword"),
    ]

    assert resolve_media_type(results).base_type == "application/zip"


def test_bare_subtype_is_prefixed() -> None:
    assert parse_mime_field("vnd.wordperfect") == "application/vnd.wordperfect"
    assert parse_mime_field("text/plain, text/x-log") == "text/plain"
    assert parse_mime_field("   ") is None
    assert parse_mime_field(None) is None


def test_puid_fallback_quotes_and_null_version() -> None:
    result = IdentificationResult(name='The "Quoted" Format', puid="x-fmt/9", version="null")

    media_type = resolve_media_type([result])

    assert media_type.base_type == "application/x-puid-x-fmt-9"
    assert dict(media_type.parameters) == {"name": "The 'Quoted' Format"}


def test_puid_fallback_version_ignores_cardinality() -> None:
    first = IdentificationResult(name="Format", puid="fmt/7", version="3")
    second = IdentificationResult(name="Other", puid="fmt/8")

    assert resolve_media_type([first, second]).parameters["version"] == "3"


def test_unparsable_mime_falls_back_to_puid() -> None:
    result = IdentificationResult(name="Odd", puid="fmt/77", mime_type="not a/mime/type")

    assert resolve_media_type([result]).base_type == "application/x-puid-fmt-77"


def test_no_mime_and_no_puid_is_octet_stream_with_name() -> None:
    result = IdentificationResult(name="Mystery", version="2")

    media_type = resolve_media_type([result])

    assert media_type.base_type == "application/octet-stream"
    assert dict(media_type.parameters) == {"name": "Mystery", "version": "2"}


@pytest.mark.parametrize(
    "results",
    [
        [],
        [IdentificationResult(name="PNG", mime_type="image/png")],
        [IdentificationResult(name="Plain Text File", puid="x-fmt/111")],
        [IdentificationResult(name="Unknown")],
        [
            IdentificationResult(name="A", mime_type="vnd.a", version="1"),
            IdentificationResult(name="B", puid="fmt/2"),
        ],
    ],
)
def test_resolution_is_pure_and_well_formed(results: list) -> None:
    first = resolve_media_type(results)
    second = resolve_media_type(list(results))

    assert first == second
    assert str(first) == str(second)
    assert first.base_type.count("/") == 1


def test_media_type_for_missing_result() -> None:
    assert media_type_for_result(None) == OCTET_STREAM


def test_parse_and_render_round_trip() -> None:
    media_type = MediaType.parse('Application/X-PUID-fmt-1; name="Two Words"; version=3')

    assert media_type.base_type == "application/x-puid-fmt-1"
    assert media_type.type == "application"
    assert media_type.subtype == "x-puid-fmt-1"
    assert dict(media_type.parameters) == {"name": "Two Words", "version": "3"}
    assert str(media_type) == 'application/x-puid-fmt-1; name="Two Words"; version=3'


@pytest.mark.parametrize("text", ["", "text", "a/b/c", "text/plain; =x", "text/plain; key"])
def test_parse_rejects_malformed_text(text: str) -> None:
    with pytest.raises(ValueError):
        MediaType.parse(text)


def test_parameters_are_read_only() -> None:
    with pytest.raises(TypeError):
        OCTET_STREAM.parameters["name"] = "x"  # type: ignore[index]
