"""Tests for tar archive extraction."""

import io
import tarfile

import pytest
from compat_setup import DecodeError
from compat_setup import extract_archive
from compat_setup.archive import single_root

from fakes import make_tarball


@pytest.mark.parametrize("mode,suffix", [("w:gz", ".tar.gz"), ("w:xz", ".tar.xz")])
def test_extract_compressed_tar(tmp_path, mode, suffix):
    """Test gzip and xz tarballs extract and the archive is removed."""
    archive = make_tarball(
        tmp_path / f"release{suffix}",
        {"release/bin/wine": b"#!/bin/sh\n", "release/share/readme.txt": b"hello"},
        mode=mode,
    )
    destination = tmp_path / "out" / "nested"

    extract_archive(archive, destination)

    assert (destination / "release" / "bin" / "wine").read_bytes() == b"#!/bin/sh\n"
    assert (destination / "release" / "share" / "readme.txt").read_text() == "hello"
    assert not archive.exists()


def test_extract_keeps_archive_when_asked(tmp_path):
    """Test remove_archive=False leaves the source archive."""
    archive = make_tarball(tmp_path / "a.tar.gz", {"file.txt": b"x"})

    extract_archive(archive, tmp_path / "out", remove_archive=False)

    assert archive.exists()


def test_extract_overwrites_existing_files(tmp_path):
    """Test extraction overwrites files already present."""
    destination = tmp_path / "out"
    destination.mkdir()
    (destination / "file.txt").write_text("old")
    archive = make_tarball(tmp_path / "a.tar.gz", {"file.txt": b"new"})

    extract_archive(archive, destination)

    assert (destination / "file.txt").read_text() == "new"


def test_corrupt_archive_raises_decode_error(tmp_path):
    """Test a non-archive file raises DecodeError and is kept."""
    archive = tmp_path / "broken.tar.gz"
    archive.write_bytes(b"this is not a tarball")

    with pytest.raises(DecodeError, match="broken.tar.gz"):
        extract_archive(archive, tmp_path / "out")

    assert archive.exists()


def test_truncated_archive_raises_decode_error(tmp_path):
    """Test a truncated gzip stream raises DecodeError."""
    archive = make_tarball(tmp_path / "full.tar.gz", {"big.bin": bytes(range(256)) * 4096})
    truncated = tmp_path / "truncated.tar.gz"
    truncated.write_bytes(archive.read_bytes()[:200])

    with pytest.raises(DecodeError):
        extract_archive(truncated, tmp_path / "out")


def test_path_traversal_rejected(tmp_path):
    """Test members escaping the destination are rejected."""
    archive = tmp_path / "evil.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        info = tarfile.TarInfo("../escaped.txt")
        info.size = 4
        tar.addfile(info, io.BytesIO(b"evil"))

    with pytest.raises(DecodeError):
        extract_archive(archive, tmp_path / "out")

    assert not (tmp_path / "escaped.txt").exists()


def test_single_root(tmp_path):
    """Test single_root finds the wrapping directory of a release tarball."""
    wrapped = tmp_path / "wrapped"
    (wrapped / "dxvk-2.4" / "x64").mkdir(parents=True)

    flat = tmp_path / "flat"
    (flat / "x64").mkdir(parents=True)
    (flat / "x32").mkdir()

    assert single_root(wrapped) == wrapped / "dxvk-2.4"
    assert single_root(flat) == flat
