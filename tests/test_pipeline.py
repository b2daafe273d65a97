from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from pathlib import Path

import pytest

import vsixgen


def _fixture_request(fixtures_dir: Path, output: Path, **overrides: object) -> vsixgen.GenerateRequest:
    fields: dict[str, object] = {
        "output": output,
        "manifest": fixtures_dir / "source.extension.vsixmanifest",
        "vsct": (fixtures_dir / "Commands.vsct",),
        "namespace": "SourceGen",
    }
    fields.update(overrides)
    return vsixgen.GenerateRequest(**fields)


def test_run_generate_writes_csharp_constants_from_fixtures(
    fixtures_dir: Path, tmp_path: Path
) -> None:
    output = tmp_path / "obj" / "Vsix.g.cs"

    result = vsixgen.run_generate(_fixture_request(fixtures_dir, output))

    assert result.success is True
    content = output.read_text(encoding="utf-8")
    assert "namespace SourceGen" in content
    assert "internal static class VsixInfo" in content
    assert "internal static class CommandsVsct" in content
    assert 'public const string Id = "SourceGen.a1b2c3d4";' in content
    assert 'public const string Description = "Says \\"hello\\" from C:\\\\Tools\\\\bin";' in content
    assert "public const bool IsPreview = true;" in content
    assert (
        'public const string guidSourceGenPackageString = "{A1B2C3D4-E5F6-7890-ABCD-EF1234567890}";'
        in content
    )
    assert "internal static class guidCommandSet1" in content
    assert "public const int MenuGroup1 = 0x1020;" in content
    assert "public const int Command1Id = 0x0100;" in content
    assert "Generated by vsixgen from source.extension.vsixmanifest, Commands.vsct." in content
    assert "Manifest: SourceGen.a1b2c3d4 1.2.3" in result.messages
    assert f"Generated constants: {output}" in result.messages


def test_run_generate_merges_command_tables_in_order(
    fixtures_dir: Path, tmp_path: Path
) -> None:
    output = tmp_path / "Vsix.g.cs"
    request = _fixture_request(
        fixtures_dir,
        output,
        manifest=None,
        vsct=(fixtures_dir / "Commands.vsct", fixtures_dir / "MoreCommands.vsct"),
    )

    result = vsixgen.run_generate(request)

    assert result.success is True
    content = output.read_text(encoding="utf-8")
    assert "VsixInfo" not in content
    assert content.index("guidCommandSet1") < content.index("guidCommandSet2")
    assert "public const int MenuGroup2 = 4128;" in content
    assert "Command tables: 3 GuidSymbols, 5 IDSymbols from 2 file(s)" in result.messages


def test_run_generate_python_output_is_importable(fixtures_dir: Path, tmp_path: Path) -> None:
    output = tmp_path / "vsix_constants.py"

    result = vsixgen.run_generate(
        _fixture_request(fixtures_dir, output, language="python", table_class="Commands")
    )

    assert result.success is True
    namespace: dict[str, object] = {}
    exec(compile(output.read_text(encoding="utf-8"), str(output), "exec"), namespace)
    assert namespace["VsixInfo"].Description == 'Says "hello" from C:\\Tools\\bin'
    commands = namespace["Commands"]
    assert commands.guidCommandSet1.Command1Id == 256
    assert commands.guidSourceGenPackage == uuid.UUID("a1b2c3d4-e5f6-7890-abcd-ef1234567890")


def test_run_generate_is_byte_identical_across_runs(fixtures_dir: Path, tmp_path: Path) -> None:
    first = tmp_path / "first" / "Vsix.g.cs"
    second = tmp_path / "second" / "Vsix.g.cs"

    assert vsixgen.run_generate(_fixture_request(fixtures_dir, first)).success is True
    assert vsixgen.run_generate(_fixture_request(fixtures_dir, second)).success is True

    assert first.read_bytes() == second.read_bytes()


def test_merge_conflict_fails_without_writing_output(
    write_vsct: Callable[[str, str], Path], tmp_path: Path
) -> None:
    symbol = '    <GuidSymbol name="guidSet" value="{11111111-2222-3333-4444-555555555555}" />\n'
    output = tmp_path / "Vsix.g.cs"
    request = vsixgen.GenerateRequest(
        output=output,
        vsct=(write_vsct("A.vsct", symbol), write_vsct("B.vsct", symbol)),
    )

    result = vsixgen.run_generate(request)

    assert result.success is False
    assert result.error_codes == ("DUPLICATE_GROUP_NAME",)
    assert result.errors[0].diagnostic_id == "VSIXSDK030"
    assert not output.exists()


def test_missing_manifest_is_file_not_found(tmp_path: Path) -> None:
    output = tmp_path / "Vsix.g.cs"
    request = vsixgen.GenerateRequest(
        output=output, manifest=tmp_path / "missing.vsixmanifest"
    )

    result = vsixgen.run_generate(request)

    assert result.error_codes == ("FILE_NOT_FOUND",)
    assert not output.exists()


def test_failed_generate_keeps_previous_output(
    write_manifest: Callable[..., Path], tmp_path: Path
) -> None:
    output = tmp_path / "Vsix.g.cs"
    output.write_bytes(b"// previous build\n")
    manifest = write_manifest('  <Metadata>\n    <DisplayName>X</DisplayName>\n  </Metadata>\n')

    result = vsixgen.run_generate(vsixgen.GenerateRequest(output=output, manifest=manifest))

    assert result.error_codes == ("MISSING_REQUIRED_FIELD",)
    assert output.read_bytes() == b"// previous build\n"


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("Commands.vsct", "CommandsVsct"),
        ("My-Package.vsct", "My_PackageVsct"),
        ("2024Menus.vsct", "_2024MenusVsct"),
    ],
)
def test_default_table_class_derives_from_first_vsct(file_name: str, expected: str) -> None:
    assert vsixgen.default_table_class(Path(file_name)) == expected


def test_build_emit_options_lists_file_names_only(fixtures_dir: Path, tmp_path: Path) -> None:
    options = vsixgen.build_emit_options(_fixture_request(fixtures_dir, tmp_path / "out.cs"))

    assert options.table_class == "CommandsVsct"
    assert options.source_names == ("source.extension.vsixmanifest", "Commands.vsct")


def test_diagnostics_are_mirrored_to_logger(
    fixtures_dir: Path, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.DEBUG, logger="vsixgen")

    vsixgen.run_generate(_fixture_request(fixtures_dir, tmp_path / "out.cs"))

    assert "Manifest: SourceGen.a1b2c3d4 1.2.3" in caplog.messages
    assert any(
        message.startswith("GuidSymbol guidSourceGenPackage declared as")
        for message in caplog.messages
    )
