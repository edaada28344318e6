from __future__ import annotations

from pathlib import Path

import pytest

from vaultscan.archive import PackageArchive, decode_name
from vaultscan.core.errors import ArchiveError
from vaultscan.package import PackageId

from tests.helpers import folder, package_bytes, write_package


def test_decode_name() -> None:
    assert decode_name("_jcr_content") == "jcr:content"
    assert decode_name("plain") == "plain"
    assert decode_name("a%20b") == "a b"


def test_entries_in_traversal_order(tmp_path: Path) -> None:
    path = write_package(
        tmp_path,
        "site",
        group="acme",
        filters=["/apps/site"],
        content={
            "apps/site/.content.json": folder("sling:Folder", title="Site", tags=["a", "b"], nested={"jcr:primaryType": "nt:unstructured", "x": 1}),
            "apps/site/b.txt": "bee",
            "apps/site/a/_rep_policy.json": {"entries": [{"principal": "everyone", "allow": True, "privileges": ["jcr:read"]}]},
            "apps/site/_sling_child/.content.json": folder(),
        },
        manifest="Manifest-Version: 1.0\n",
    )
    with PackageArchive.open(path) as archive:
        assert archive.package_id == PackageId("acme", "site", "1.0")
        assert archive.file == str(path)
        assert archive.meta_inf.manifest.get("Manifest-Version") == "1.0"
        entries = archive.entries()
    assert archive.closed
    assert [entry.path for entry in entries] == [
        "/apps",
        "/apps/site",
        "/apps/site/a",
        "/apps/site/b.txt",
        "/apps/site/b.txt/jcr:content",
        "/apps/site/nested",
        "/apps/site/sling:child",
    ]
    by_path = {entry.path: entry for entry in entries}
    site = by_path["/apps/site"]
    assert site.primary_type == "sling:Folder"
    assert site.properties == {"title": "Site", "tags": ("a", "b")}
    assert by_path["/apps/site/nested"].properties == {"x": 1}
    assert by_path["/apps/site/a"].acl is not None
    assert by_path["/apps/site/a"].acl[0].principal == "everyone"
    assert by_path["/apps/site/b.txt"].is_file
    assert by_path["/apps/site/b.txt"].data == b"bee"
    assert by_path["/apps/site/b.txt/jcr:content"].properties["jcr:mimeType"] == "text/plain"


def test_open_from_bytes_and_stream(tmp_path: Path) -> None:
    data = package_bytes("mem")
    with PackageArchive.open(data) as archive:
        assert archive.package_id.name == "mem"
        assert archive.location is None
    with (tmp_path / "s.zip").open("wb") as fh:
        fh.write(data)
    with (tmp_path / "s.zip").open("rb") as fh, PackageArchive.open(fh) as archive:
        assert archive.package_id.name == "mem"
        assert archive.meta_inf.filter.filter_sets == ()


def test_malformed_archives(tmp_path: Path) -> None:
    with pytest.raises(ArchiveError):
        PackageArchive.open(b"not a zip")
    with pytest.raises(ArchiveError):
        PackageArchive.open(tmp_path / "missing.zip")
    broken = package_bytes("broken", content={"apps/.content.json": "{not json"})
    with PackageArchive.open(broken) as archive:
        with pytest.raises(ArchiveError):
            archive.entries()
    bad_acl = package_bytes("acl", content={"apps/_rep_policy.json": {"entries": [{"principal": "", "privileges": []}]}})
    with PackageArchive.open(bad_acl) as archive:
        with pytest.raises(ArchiveError):
            archive.entries()
