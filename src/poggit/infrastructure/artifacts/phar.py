"""Reader and writer for PocketMine plugin packages.

Two container layouts are understood:

* the native phar layout: a PHP stub terminated by ``__HALT_COMPILER();``,
  a little-endian binary manifest, the concatenated entry bodies and an
  optional trailing hash signature;
* the zip-based phar layout, handled through :mod:`zipfile`.

Both expose the same small surface (``names``, ``read``, ``replace``,
``to_bytes``) so callers can rewrite a single entry and re-serialize the
whole container without touching the others.
"""

from __future__ import annotations

import bz2
import hashlib
import io
import struct
import zipfile
import zlib
from dataclasses import dataclass
from typing import Protocol

HALT_COMPILER_TOKEN = b"__HALT_COMPILER();"
SIGNATURE_MAGIC = b"GBMB"

MANIFEST_FLAG_SIGNED = 0x00010000

ENTRY_COMPRESSED_ZLIB = 0x00001000
ENTRY_COMPRESSED_BZIP2 = 0x00002000
ENTRY_COMPRESSION_MASK = 0x0000F000

SIGNATURE_ALGORITHMS: dict[int, tuple[str, int]] = {
    0x0001: ("md5", 16),
    0x0002: ("sha1", 20),
    0x0003: ("sha256", 32),
    0x0004: ("sha512", 64),
}
OPENSSL_SIGNATURES = {0x0010, 0x0011, 0x0012}

ZIP_MAGIC = b"PK\x03\x04"


class PharFormatError(ValueError):
    pass


class PluginPackage(Protocol):
    def names(self) -> list[str]: ...

    def read(self, name: str) -> bytes: ...

    def replace(self, name: str, content: bytes) -> None: ...

    def to_bytes(self) -> bytes: ...


def open_package(data: bytes) -> PluginPackage:
    if data.startswith(ZIP_MAGIC):
        return ZipPharArchive.from_bytes(data)
    return PharArchive.from_bytes(data)


@dataclass(slots=True)
class PharEntry:
    name: str
    uncompressed_size: int
    timestamp: int
    crc32: int
    flags: int
    metadata: bytes
    body: bytes

    @property
    def compression(self) -> int:
        return self.flags & ENTRY_COMPRESSION_MASK

    def content(self) -> bytes:
        if self.compression == 0:
            data = self.body
        elif self.compression == ENTRY_COMPRESSED_ZLIB:
            try:
                data = zlib.decompress(self.body, -zlib.MAX_WBITS)
            except zlib.error as exc:
                raise PharFormatError(f"Entry {self.name} has a corrupt deflate stream") from exc
        elif self.compression == ENTRY_COMPRESSED_BZIP2:
            try:
                data = bz2.decompress(self.body)
            except (OSError, ValueError) as exc:
                raise PharFormatError(f"Entry {self.name} has a corrupt bzip2 stream") from exc
        else:
            raise PharFormatError(f"Entry {self.name} uses unknown compression 0x{self.compression:x}")
        if len(data) != self.uncompressed_size or zlib.crc32(data) != self.crc32:
            raise PharFormatError(f"Entry {self.name} failed its size or CRC32 check")
        return data

    def set_content(self, data: bytes) -> None:
        if self.compression == ENTRY_COMPRESSED_ZLIB:
            compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -zlib.MAX_WBITS)
            self.body = compressor.compress(data) + compressor.flush()
        elif self.compression == ENTRY_COMPRESSED_BZIP2:
            self.body = bz2.compress(data)
        else:
            self.body = data
        self.uncompressed_size = len(data)
        self.crc32 = zlib.crc32(data)


class _Cursor:
    def __init__(self, data: bytes, offset: int, end: int) -> None:
        self.data = data
        self.offset = offset
        self.end = end

    def take(self, size: int) -> bytes:
        if size < 0 or self.offset + size > self.end:
            raise PharFormatError("Phar manifest is truncated")
        chunk = self.data[self.offset : self.offset + size]
        self.offset += size
        return chunk

    def uint32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]


class PharArchive:
    def __init__(
        self,
        stub: bytes,
        api_version: bytes,
        flags: int,
        alias: bytes,
        metadata: bytes,
        entries: list[PharEntry],
        signature_type: int | None,
    ) -> None:
        self.stub = stub
        self.api_version = api_version
        self.flags = flags
        self.alias = alias
        self.metadata = metadata
        self.entries = entries
        self.signature_type = signature_type

    @classmethod
    def from_bytes(cls, data: bytes) -> PharArchive:
        token_at = data.find(HALT_COMPILER_TOKEN)
        if token_at < 0:
            raise PharFormatError("Not a phar: __HALT_COMPILER(); not found")
        offset = _skip_stub_terminator(data, token_at + len(HALT_COMPILER_TOKEN))
        stub = data[:offset]

        end = len(data)
        signature_type: int | None = None
        if data.endswith(SIGNATURE_MAGIC):
            if end < 8:
                raise PharFormatError("Phar signature is truncated")
            signature_type = struct.unpack("<I", data[end - 8 : end - 4])[0]
            if signature_type in OPENSSL_SIGNATURES:
                raise PharFormatError("OpenSSL-signed phars cannot be re-signed")
            if signature_type not in SIGNATURE_ALGORITHMS:
                raise PharFormatError(f"Unknown phar signature type 0x{signature_type:x}")
            algorithm, digest_size = SIGNATURE_ALGORITHMS[signature_type]
            end -= 8 + digest_size
            if end < offset:
                raise PharFormatError("Phar signature is truncated")
            expected = data[end : end + digest_size]
            if hashlib.new(algorithm, data[:end]).digest() != expected:
                raise PharFormatError("Phar signature does not match its contents")

        head = _Cursor(data, offset, end)
        manifest_length = head.uint32()
        manifest = _Cursor(data, head.offset, head.offset + manifest_length)
        if manifest.end > end:
            raise PharFormatError("Phar manifest length exceeds file size")

        entry_count = manifest.uint32()
        api_version = manifest.take(2)
        flags = manifest.uint32()
        alias = manifest.take(manifest.uint32())
        metadata = manifest.take(manifest.uint32())

        headers: list[tuple[str, int, int, int, int, int, bytes]] = []
        for _ in range(entry_count):
            name = manifest.take(manifest.uint32()).decode("utf-8", errors="surrogateescape")
            uncompressed_size = manifest.uint32()
            timestamp = manifest.uint32()
            compressed_size = manifest.uint32()
            crc32 = manifest.uint32()
            entry_flags = manifest.uint32()
            entry_metadata = manifest.take(manifest.uint32())
            headers.append((name, uncompressed_size, timestamp, compressed_size, crc32, entry_flags, entry_metadata))

        bodies = _Cursor(data, manifest.end, end)
        entries = [
            PharEntry(
                name=name,
                uncompressed_size=uncompressed_size,
                timestamp=timestamp,
                crc32=crc32,
                flags=entry_flags,
                metadata=entry_metadata,
                body=bodies.take(compressed_size),
            )
            for name, uncompressed_size, timestamp, compressed_size, crc32, entry_flags, entry_metadata in headers
        ]
        return cls(
            stub=stub,
            api_version=api_version,
            flags=flags,
            alias=alias,
            metadata=metadata,
            entries=entries,
            signature_type=signature_type,
        )

    def names(self) -> list[str]:
        return [entry.name for entry in self.entries]

    def read(self, name: str) -> bytes:
        return self._entry(name).content()

    def replace(self, name: str, content: bytes) -> None:
        self._entry(name).set_content(content)

    def to_bytes(self) -> bytes:
        manifest = io.BytesIO()
        manifest.write(struct.pack("<I", len(self.entries)))
        manifest.write(self.api_version)
        manifest.write(struct.pack("<I", self.flags))
        manifest.write(struct.pack("<I", len(self.alias)) + self.alias)
        manifest.write(struct.pack("<I", len(self.metadata)) + self.metadata)
        for entry in self.entries:
            name = entry.name.encode("utf-8", errors="surrogateescape")
            manifest.write(struct.pack("<I", len(name)) + name)
            manifest.write(
                struct.pack(
                    "<IIIII",
                    entry.uncompressed_size,
                    entry.timestamp,
                    len(entry.body),
                    entry.crc32,
                    entry.flags,
                )
            )
            manifest.write(struct.pack("<I", len(entry.metadata)) + entry.metadata)
        manifest_bytes = manifest.getvalue()

        out = io.BytesIO()
        out.write(self.stub)
        out.write(struct.pack("<I", len(manifest_bytes)))
        out.write(manifest_bytes)
        for entry in self.entries:
            out.write(entry.body)

        if self.signature_type is not None:
            algorithm, _ = SIGNATURE_ALGORITHMS[self.signature_type]
            digest = hashlib.new(algorithm, out.getvalue()).digest()
            out.write(digest)
            out.write(struct.pack("<I", self.signature_type))
            out.write(SIGNATURE_MAGIC)
        return out.getvalue()

    def _entry(self, name: str) -> PharEntry:
        for entry in self.entries:
            if entry.name == name:
                return entry
        raise KeyError(name)


class ZipPharArchive:
    def __init__(self, infos: list[zipfile.ZipInfo], contents: dict[str, bytes], comment: bytes) -> None:
        self.infos = infos
        self.contents = contents
        self.comment = comment

    @classmethod
    def from_bytes(cls, data: bytes) -> ZipPharArchive:
        try:
            with zipfile.ZipFile(io.BytesIO(data), "r") as archive:
                infos = archive.infolist()
                contents = {info.filename: archive.read(info) for info in infos}
                comment = archive.comment
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise PharFormatError(f"Corrupt zip-based phar: {exc}") from exc
        return cls(infos=infos, contents=contents, comment=comment)

    def names(self) -> list[str]:
        return [info.filename for info in self.infos]

    def read(self, name: str) -> bytes:
        return self.contents[name]

    def replace(self, name: str, content: bytes) -> None:
        if name not in self.contents:
            raise KeyError(name)
        self.contents[name] = content

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            for info in self.infos:
                archive.writestr(info, self.contents[info.filename], compress_type=info.compress_type)
            archive.comment = self.comment
        return buffer.getvalue()


def _skip_stub_terminator(data: bytes, offset: int) -> int:
    if data[offset : offset + 3] == b" ?>":
        offset += 3
    elif data[offset : offset + 2] == b"?>":
        offset += 2
    if data[offset : offset + 2] == b"\r\n":
        offset += 2
    elif data[offset : offset + 1] == b"\n":
        offset += 1
    return offset


def build_phar(
    files: dict[str, bytes],
    *,
    stub: bytes = b"<?php __HALT_COMPILER(); ?>\r\n",
    alias: bytes = b"",
    compression: int = 0,
    signature_type: int | None = 0x0002,
    timestamp: int = 0,
) -> bytes:
    """Build a native phar from scratch, mainly for tooling and fixtures."""
    entries: list[PharEntry] = []
    for name, content in files.items():
        entry = PharEntry(
            name=name,
            uncompressed_size=0,
            timestamp=timestamp,
            crc32=0,
            flags=0o644 | compression,
            metadata=b"",
            body=b"",
        )
        entry.set_content(content)
        entries.append(entry)
    flags = compression
    if signature_type is not None:
        flags |= MANIFEST_FLAG_SIGNED
    archive = PharArchive(
        stub=stub,
        api_version=b"\x11\x00",
        flags=flags,
        alias=alias,
        metadata=b"",
        entries=entries,
        signature_type=signature_type,
    )
    return archive.to_bytes()
