import io
import zipfile

import pytest
import yaml

from poggit.infrastructure.artifacts.phar import (
    ENTRY_COMPRESSED_BZIP2,
    ENTRY_COMPRESSED_ZLIB,
    PharArchive,
    PharFormatError,
    ZipPharArchive,
    build_phar,
    open_package,
)

from conftest import plugin_phar


def test_replace_rewrites_only_the_target_entry() -> None:
    data = plugin_phar(version="1.0.0")
    archive = open_package(data)
    assert isinstance(archive, PharArchive)
    assert archive.names() == ["plugin.yml", "src/demo/Main.php"]

    archive.replace("plugin.yml", b"name: DemoPlugin\nversion: 2.0.0\n")
    rewritten = PharArchive.from_bytes(archive.to_bytes())

    assert rewritten.read("plugin.yml") == b"name: DemoPlugin\nversion: 2.0.0\n"
    assert rewritten.read("src/demo/Main.php") == b"<?php\nnamespace demo;\nclass Main {}\n"
    assert rewritten.stub == PharArchive.from_bytes(data).stub


@pytest.mark.parametrize("compression", [ENTRY_COMPRESSED_ZLIB, ENTRY_COMPRESSED_BZIP2])
def test_compressed_entries_keep_their_compression(compression: int) -> None:
    data = plugin_phar(compression=compression)
    archive = PharArchive.from_bytes(data)
    archive.replace("plugin.yml", b"version: 9.9.9\n")

    rewritten = PharArchive.from_bytes(archive.to_bytes())
    entry = rewritten.entries[0]
    assert entry.compression == compression
    assert entry.body != b"version: 9.9.9\n"
    assert rewritten.read("plugin.yml") == b"version: 9.9.9\n"


def test_signature_is_verified_and_regenerated() -> None:
    data = plugin_phar(signature_type=0x0003)
    assert data.endswith(b"GBMB")

    tampered = bytearray(data)
    body_at = data.index(b"namespace demo")
    tampered[body_at] ^= 0xFF
    with pytest.raises(PharFormatError, match="signature"):
        PharArchive.from_bytes(bytes(tampered))

    archive = PharArchive.from_bytes(data)
    archive.replace("plugin.yml", b"version: 2.0.0\n")
    assert PharArchive.from_bytes(archive.to_bytes()).signature_type == 0x0003


def test_unsigned_phar_stays_unsigned() -> None:
    archive = PharArchive.from_bytes(plugin_phar(signature_type=None))
    assert archive.signature_type is None
    assert not archive.to_bytes().endswith(b"GBMB")


def test_rejects_non_phar_and_truncated_input() -> None:
    with pytest.raises(PharFormatError):
        open_package(b"just some bytes")

    data = plugin_phar(signature_type=None)
    with pytest.raises(PharFormatError):
        PharArchive.from_bytes(data[: len(data) - 20])


def test_zip_based_phar_round_trip() -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("plugin.yml", "name: ZipPlugin\nversion: 0.1.0\n")
        zf.writestr("resources/config.yml", "enabled: true\n")

    archive = open_package(buffer.getvalue())
    assert isinstance(archive, ZipPharArchive)
    archive.replace("plugin.yml", b"name: ZipPlugin\nversion: 0.2.0\n")

    with zipfile.ZipFile(io.BytesIO(archive.to_bytes())) as zf:
        assert yaml.safe_load(zf.read("plugin.yml"))["version"] == "0.2.0"
        assert zf.read("resources/config.yml") == b"enabled: true\n"


def test_missing_entry_raises_key_error() -> None:
    archive = open_package(build_phar({"README.md": b"hi"}))
    with pytest.raises(KeyError):
        archive.read("plugin.yml")
