"""
Tests for resolving locations to local paths and staging outputs.
"""

import zipfile
from unittest.mock import MagicMock, patch

import pytest
import requests

from buildrelay.config import RelayConfig
from buildrelay.domain.location import (
    ArchiveLocation,
    LocationScheme,
    ObjectStoreLocation,
    PlainLocation,
    parse,
)
from buildrelay.exceptions import ArchiveError, InvalidLocation, TransferError
from buildrelay.resolver import Resolver
from buildrelay.staging import StagingAreaManager
from buildrelay.transfer import HttpClient, ObjectStoreClient, TransferClients

from fixtures import make_response, make_zip


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def resolver(config, memory_fs, session):
    clients = TransferClients(
        config,
        {
            LocationScheme.S3: ObjectStoreClient(config, fs=memory_fs),
            LocationScheme.HTTP: HttpClient(config, session=session),
        },
    )
    with StagingAreaManager(config) as staging:
        yield Resolver(config, clients, staging)


class TestResolve:

    def test_plain_location_is_returned_unchanged(self, resolver, tmp_path):
        local = tmp_path / "doc.dita"
        local.write_text("<topic/>")
        assert resolver.resolve_string(str(local)) == local
        assert not any(resolver.staging.inbound.iterdir())

    def test_object_is_downloaded_to_staging(self, resolver, memory_fs, tmp_path):
        memory_fs.pipe("bucket/docs/map.ditamap", b"<map/>")
        path = resolver.resolve(ObjectStoreLocation("bucket", "docs/map.ditamap"), tmp_path / "in")
        assert path == tmp_path / "in" / "map.ditamap"
        assert path.read_bytes() == b"<map/>"

    def test_archive_entry_in_object_store(self, resolver, memory_fs, tmp_path):
        memory_fs.pipe("bucket/in.zip", make_zip({"topics/a.dita": "<topic id='a'/>", "map.ditamap": "<map/>"}))
        staging = tmp_path / "in"

        path = resolver.resolve_string("archive:s3://bucket/in.zip!/topics/a.dita", staging)

        assert path == staging / "topics" / "a.dita"
        assert path.read_text() == "<topic id='a'/>"
        # The downloaded archive itself is gone
        assert sorted(p.name for p in staging.iterdir()) == ["map.ditamap", "topics"]

    def test_nested_archive_over_http(self, resolver, session, tmp_path):
        inner = make_zip({"entry.txt": "innermost"})
        session.get.return_value = make_response(make_zip({"a.zip": inner}))
        staging = tmp_path / "in"

        path = resolver.resolve_string(
            "archive:archive:https://example.com/outer.zip!/a.zip!/entry.txt", staging
        )

        assert path.read_text() == "innermost"
        assert [p.name for p in staging.iterdir()] == ["entry.txt"]
        session.get.assert_called_once()

    def test_local_archive_is_kept(self, resolver, tmp_path):
        archive = tmp_path / "in.zip"
        archive.write_bytes(make_zip({"doc.txt": "text"}))

        path = resolver.resolve(ArchiveLocation(PlainLocation(str(archive)), "doc.txt"), tmp_path / "in")

        assert path.read_text() == "text"
        assert archive.exists()

    def test_archive_with_entry_named_like_itself(self, resolver, memory_fs, tmp_path):
        memory_fs.pipe("bucket/doc.zip", make_zip({"doc.zip": "not an archive"}))
        path = resolver.resolve_string("archive:s3://bucket/doc.zip!/doc.zip", tmp_path / "in")
        assert path.read_text() == "not an archive"

    def test_without_entry_returns_staging_directory(self, resolver, memory_fs, tmp_path):
        memory_fs.pipe("bucket/in.zip", make_zip({"a.txt": "a", "b/c.txt": "c"}))
        staging = tmp_path / "in"

        assert resolver.resolve_string("archive:s3://bucket/in.zip", staging) == staging
        assert (staging / "b" / "c.txt").read_text() == "c"

    def test_missing_entry_fails_on_read(self, resolver, memory_fs, tmp_path):
        memory_fs.pipe("bucket/in.zip", make_zip({"a.txt": "a"}))
        path = resolver.resolve_string("archive:s3://bucket/in.zip!/missing.txt", tmp_path / "in")
        with pytest.raises(FileNotFoundError):
            path.read_text()

    def test_default_staging_directory_is_inbound(self, resolver, memory_fs):
        memory_fs.pipe("bucket/doc.txt", b"doc")
        path = resolver.resolve_string("s3://bucket/doc.txt")
        assert path.parent == resolver.staging.inbound

    def test_corrupt_archive_raises_archive_error(self, resolver, memory_fs, tmp_path):
        memory_fs.pipe("bucket/in.zip", b"definitely not a zip")
        with pytest.raises(ArchiveError):
            resolver.resolve_string("archive:s3://bucket/in.zip!/a.txt", tmp_path / "in")

    def test_failed_download_raises_transfer_error(self, resolver, session, tmp_path):
        session.get.return_value = make_response(status=503)
        with pytest.raises(TransferError):
            resolver.resolve_string("archive:https://example.com/in.zip!/a.txt", tmp_path / "in")

    def test_unsupported_scheme(self, resolver):
        with pytest.raises(InvalidLocation):
            resolver.resolve_string("ftp://example.com/in.zip")

    def test_entry_escaping_staging_is_rejected(self, resolver, memory_fs, tmp_path):
        memory_fs.pipe("bucket/in.zip", make_zip({"a.txt": "a"}))
        with pytest.raises(InvalidLocation):
            resolver.resolve_string("archive:s3://bucket/in.zip!/../a.txt", tmp_path / "in")

    def test_inner_directory_is_rejected(self, resolver, tmp_path):
        with pytest.raises(InvalidLocation):
            resolver.resolve(ArchiveLocation(PlainLocation(str(tmp_path)), "a.txt"), tmp_path / "in")

    def test_nesting_limit_is_checked_before_io(self, tmp_path):
        config = RelayConfig(staging_root=tmp_path / "staging", max_depth=2)
        fs = MagicMock()
        resolver = Resolver(config, TransferClients(config, {LocationScheme.S3: ObjectStoreClient(config, fs=fs)}))

        location = parse("archive:archive:archive:s3://bucket/in.zip!/a.zip!/b.zip!/c.txt")
        with pytest.raises(InvalidLocation, match="maximum depth"):
            resolver.resolve(location, tmp_path / "in")
        fs.get_file.assert_not_called()


class TestStage:

    def test_single_file_is_pushed_once(self, resolver, memory_fs, tmp_path):
        local = tmp_path / "out.pdf"
        local.write_bytes(b"%PDF")

        resolver.stage(local, ObjectStoreLocation("bucket", "results/out.pdf"))

        assert memory_fs.cat("bucket/results/out.pdf") == b"%PDF"

    def test_directory_pushes_every_file(self, resolver, memory_fs, source_tree):
        client = resolver.clients.for_location(ObjectStoreLocation("bucket"))
        with patch.object(client, "push_file", wraps=client.push_file) as push_file:
            resolver.stage_string(source_tree, "s3://bucket/site")
        assert push_file.call_count == 3
        assert memory_fs.cat("bucket/site/sub/deep/c.bin") == bytes(range(256)) * 10

    def test_archive_destination_uploads_packed_tree(self, resolver, memory_fs, source_tree, tmp_path):
        resolver.stage_string(source_tree, "archive:s3://bucket/results/out.zip!/")

        local = tmp_path / "downloaded.zip"
        local.write_bytes(memory_fs.cat("bucket/results/out.zip"))
        with zipfile.ZipFile(local) as zf:
            assert zf.namelist() == ["a.txt", "sub/b.txt", "sub/deep/c.bin"]
            assert zf.read("sub/b.txt") == b"bravo"
        # The temporary archive was removed
        assert list(resolver.staging.area("pack").iterdir()) == []

    def test_archive_destination_over_http(self, resolver, session, source_tree):
        bodies = []
        session.post.side_effect = lambda url, data, **kwargs: bodies.append(data.read()) or make_response()

        resolver.stage_string(source_tree, "archive:https://example.com/upload/out.zip")

        assert session.post.call_count == 1
        assert bodies[0][:2] == b"PK"

    def test_archive_destination_with_entry_name(self, resolver, memory_fs, tmp_path):
        local = tmp_path / "report.pdf"
        local.write_bytes(b"%PDF")

        resolver.stage_string(local, "archive:s3://bucket/out.zip!/docs/final.pdf")

        archive = tmp_path / "out.zip"
        archive.write_bytes(memory_fs.cat("bucket/out.zip"))
        with zipfile.ZipFile(archive) as zf:
            assert zf.namelist() == ["docs/final.pdf"]

    def test_plain_destination_is_rejected(self, resolver, source_tree, tmp_path):
        with pytest.raises(InvalidLocation):
            resolver.stage_string(source_tree, str(tmp_path / "elsewhere"))

    def test_failed_upload_propagates(self, resolver, session, source_tree):
        session.post.return_value = make_response(status=500)
        with pytest.raises(TransferError):
            resolver.stage_string(source_tree, "https://example.com/upload")
