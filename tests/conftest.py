import argparse
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

TOOL_DIR = Path(__file__).resolve().parent.parent
if str(TOOL_DIR) not in sys.path:
    sys.path.insert(0, str(TOOL_DIR))

import vsixgen  # noqa: E402

FIXTURES_DIR = TOOL_DIR / "tests" / "fixtures"

MINIMAL_METADATA = (
    "  <Metadata>\n"
    '    <Identity Id="Sample.Extension" Version="1.0.0" Language="en-US" Publisher="Sample" />\n'
    "    <DisplayName>Sample Extension</DisplayName>\n"
    "  </Metadata>\n"
)


def manifest_xml(body: str = MINIMAL_METADATA) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<PackageManifest Version="2.0.0" xmlns="{vsixgen.VSIX_NAMESPACE}">\n'
        f"{body}"
        "</PackageManifest>\n"
    )


def vsct_xml(symbols: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<CommandTable xmlns="{vsixgen.VSCT_NAMESPACE}">\n'
        "  <Symbols>\n"
        f"{symbols}"
        "  </Symbols>\n"
        "</CommandTable>\n"
    )


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write_file(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write_file


@pytest.fixture
def write_manifest(write_file: Callable[[str, str], Path]) -> Callable[..., Path]:
    def _write_manifest(
        body: str = MINIMAL_METADATA, name: str = "source.extension.vsixmanifest"
    ) -> Path:
        return write_file(name, manifest_xml(body))

    return _write_manifest


@pytest.fixture
def write_vsct(write_file: Callable[[str, str], Path]) -> Callable[[str, str], Path]:
    def _write_vsct(name: str, symbols: str) -> Path:
        return write_file(name, vsct_xml(symbols))

    return _write_vsct


@pytest.fixture
def make_injection_request(tmp_path: Path) -> Callable[..., vsixgen.ContentInjectionRequest]:
    def _make_request(
        source: Path, output: Path | None = None, **overrides: object
    ) -> vsixgen.ContentInjectionRequest:
        return vsixgen.ContentInjectionRequest(
            source_manifest=source,
            output_manifest=tmp_path / "obj" / "source.extension.vsixmanifest"
            if output is None
            else output,
            **overrides,
        )

    return _make_request


@pytest.fixture
def make_args(tmp_path: Path) -> Callable[..., argparse.Namespace]:
    def _make_args(command: str = "generate", **overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {"command": command, "verbose": False}
        if command == "generate":
            base_args.update(
                {
                    "manifest": tmp_path / "source.extension.vsixmanifest",
                    "vsct": None,
                    "output": tmp_path / "Vsix.g.cs",
                    "language": "csharp",
                    "namespace": None,
                    "info_class": vsixgen.DEFAULT_INFO_CLASS,
                    "table_class": None,
                }
            )
        else:
            base_args.update(
                {
                    "source": tmp_path / "source.extension.vsixmanifest",
                    "output": tmp_path / "obj" / "source.extension.vsixmanifest",
                    "project_templates": False,
                    "item_templates": False,
                    "project_templates_path": vsixgen.DEFAULT_PROJECT_TEMPLATES_PATH,
                    "item_templates_path": vsixgen.DEFAULT_ITEM_TEMPLATES_PATH,
                }
            )
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args
