from __future__ import annotations

import os

import pytest

from chatrelay.artifacts import ArtifactMaterializer, sanitize_relative_path
from chatrelay.artifacts.materializer import flatten_filename
from chatrelay.exceptions import (
    ArtifactWriteError,
    InvalidOutputPath,
    RelayError,
)
from chatrelay.types import ArtifactBundle, GeneratedArtifactFile


def _bundle(*files) -> ArtifactBundle:
    return ArtifactBundle(
        summary="test",
        files=tuple(
            GeneratedArtifactFile(path=path, content=content)
            for path, content in files
        ),
    )


@pytest.mark.parametrize(
    "unsafe, expected",
    [
        ("index.html", "index.html"),
        ("../../etc/passwd", "etc/passwd"),
        ("/abs/path.txt", "abs/path.txt"),
        ("..\\..\\windows\\evil.bat", "windows/evil.bat"),
        ("src\\app\\main.py", "src/app/main.py"),
        ("a/./b//c.txt", "a/b/c.txt"),
        ("a/b/../../../x.txt", "x.txt"),
        ("nul\x00byte.txt", "nulbyte.txt"),
        ("", "generated-file.txt"),
        ("..", "generated-file.txt"),
        ("/", "generated-file.txt"),
        ("./././", "generated-file.txt"),
    ],
)
def test_sanitize_relative_path(unsafe, expected):
    assert sanitize_relative_path(unsafe) == expected


@pytest.mark.parametrize(
    "unsafe",
    ["../../etc/passwd", "..\\..\\x", "/../../../root", "a/../../..//b"],
)
def test_sanitized_paths_never_climb(unsafe):
    segments = sanitize_relative_path(unsafe).split("/")
    assert ".." not in segments
    assert "" not in segments
    assert "." not in segments


def test_flatten_filename():
    assert flatten_filename("../notes/today.txt") == "notes_today.txt"
    assert flatten_filename("") == "generated-file.txt"


def test_write_bundle_creates_nested_files(tmp_path):
    materializer = ArtifactMaterializer(tmp_path / "out")

    written = materializer.write_bundle(
        "42",
        _bundle(("index.html", "<h1>Hi</h1>"), ("css/site.css", "body{}")),
    )

    base = (tmp_path / "out" / "42").resolve()
    assert written.base_dir == base
    assert [item.relative_path for item in written.files] == [
        "index.html",
        "css/site.css",
    ]
    assert (base / "css" / "site.css").read_text(encoding="utf-8") == (
        "body{}"
    )
    for item in written.files:
        assert item.absolute_path.is_relative_to(base)


def test_traversal_lands_inside_the_owner_sandbox(tmp_path):
    materializer = ArtifactMaterializer(tmp_path / "out")

    written = materializer.write_bundle(
        "u1", _bundle(("../../etc/passwd", "root:x:0:0"))
    )

    target = (tmp_path / "out" / "u1" / "etc" / "passwd").resolve()
    assert written.files[0].relative_path == "etc/passwd"
    assert written.files[0].absolute_path == target
    assert target.read_text(encoding="utf-8") == "root:x:0:0"


def test_unicode_content_is_written_as_utf8(tmp_path):
    materializer = ArtifactMaterializer(tmp_path)
    written = materializer.write_bundle("u", _bundle(("ru.txt", "Привет")))
    assert written.files[0].absolute_path.read_bytes() == "Привет".encode(
        "utf-8"
    )


def test_owner_id_is_a_single_segment(tmp_path):
    materializer = ArtifactMaterializer(tmp_path / "out")

    owner_dir = materializer.owner_dir("../../victim")

    assert owner_dir == (tmp_path / "out" / "victim").resolve()


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
def test_symlink_escape_aborts_whole_bundle(tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    materializer = ArtifactMaterializer(tmp_path / "out")
    owner_dir = materializer.owner_dir("u1")
    owner_dir.mkdir(parents=True)
    (owner_dir / "link").symlink_to(outside, target_is_directory=True)

    with pytest.raises(InvalidOutputPath) as excinfo:
        materializer.write_bundle(
            "u1",
            _bundle(("safe.txt", "ok"), ("link/evil.txt", "pwned")),
        )

    assert excinfo.value.path == "link/evil.txt"
    assert not (owner_dir / "safe.txt").exists()
    assert list(outside.iterdir()) == []


def test_write_large_text_goes_to_responses(tmp_path):
    materializer = ArtifactMaterializer(tmp_path)

    path = materializer.write_large_text(
        "u1", "../ai-response-20250101000000.txt", "x" * 10
    )

    assert path == (
        tmp_path / "u1" / "responses" / "ai-response-20250101000000.txt"
    ).resolve()
    assert path.read_text(encoding="utf-8") == "x" * 10


@pytest.mark.parametrize(
    "files",
    [
        (("app", "x"), ("app/main.py", "y")),
        (("app/main.py", "y"), ("app", "x")),
        (("index.html", "a"), ("./index.html", "b")),
        (("/app", "x"), ("app/", "y")),
    ],
)
def test_colliding_bundle_is_rejected_before_writing(tmp_path, files):
    materializer = ArtifactMaterializer(tmp_path / "out")

    with pytest.raises(ArtifactWriteError) as excinfo:
        materializer.write_bundle("u1", _bundle(*files))

    assert isinstance(excinfo.value, RelayError)
    assert list(materializer.owner_dir("u1").iterdir()) == []


def test_existing_directory_blocks_file_target(tmp_path):
    materializer = ArtifactMaterializer(tmp_path / "out")
    owner_dir = materializer.owner_dir("u1")
    (owner_dir / "app").mkdir(parents=True)

    with pytest.raises(ArtifactWriteError) as excinfo:
        materializer.write_bundle(
            "u1", _bundle(("readme.md", "hi"), ("app", "x"))
        )

    assert excinfo.value.path == "app"
    assert not (owner_dir / "readme.md").exists()


def test_existing_file_blocks_nested_target(tmp_path):
    materializer = ArtifactMaterializer(tmp_path / "out")
    materializer.write_bundle("u1", _bundle(("app", "x")))

    with pytest.raises(ArtifactWriteError, match="app/main.py"):
        materializer.write_bundle("u1", _bundle(("app/main.py", "y")))

    owner_dir = materializer.owner_dir("u1")
    assert (owner_dir / "app").read_text(encoding="utf-8") == "x"


def test_rewriting_the_same_bundle_overwrites_files(tmp_path):
    materializer = ArtifactMaterializer(tmp_path / "out")
    materializer.write_bundle("u1", _bundle(("app/main.py", "v1")))

    written = materializer.write_bundle("u1", _bundle(("app/main.py", "v2")))

    assert written.files[0].absolute_path.read_text(encoding="utf-8") == "v2"


def test_os_errors_surface_as_relay_errors(tmp_path, monkeypatch):
    materializer = ArtifactMaterializer(tmp_path / "out")

    def fail(self, *args, **kwargs):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(type(tmp_path), "write_text", fail)

    with pytest.raises(ArtifactWriteError) as excinfo:
        materializer.write_bundle("u1", _bundle(("a.txt", "x")))

    assert isinstance(excinfo.value.__cause__, PermissionError)
    assert "read-only filesystem" in str(excinfo.value)
