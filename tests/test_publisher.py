"""Tests for the per-file publish decisions."""

import io
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from pypublish.exceptions import (
    RemoteQueryError,
    RemoteWriteError,
    UnsupportedPayloadError,
)
from pypublish.models import (
    EmptyPayload,
    FileRecord,
    FileState,
    RemoteObjectMeta,
    StreamPayload,
)
from pypublish.publisher import PublishOptions, Publisher
from pypublish.utils import calculate_fingerprint


class TestPayloadKinds:
    """Tests for payload handling."""

    def test_empty_payload_is_returned_unchanged(self, store, cache):
        """Files without content are passed through untouched."""
        record = FileRecord(path="dir", key="dir", payload=EmptyPayload())

        result = Publisher(store, cache).publish(record)

        assert result is record
        assert result.state is None
        assert result.fingerprint is None
        assert store.calls == []

    def test_stream_payload_is_rejected(self, store, cache):
        """Streaming content is not supported."""
        record = FileRecord(
            path="a.txt", key="a.txt", payload=StreamPayload(io.BytesIO(b"hi"))
        )

        with pytest.raises(UnsupportedPayloadError, match="a.txt"):
            Publisher(store, cache).publish(record)
        assert store.calls == []

    def test_delete_marked_record_passes_through(self, store, cache):
        """Records marked for deletion upstream are not queried."""
        record = FileRecord.from_bytes("a.txt", b"hi")
        record.state = FileState.DELETE

        result = Publisher(store, cache).publish(record)

        assert result.state == FileState.DELETE
        assert store.calls == []

    def test_delete_marked_stream_passes_through(self, store, cache):
        """The delete marker wins over the payload kind."""
        record = FileRecord(
            path="a.txt",
            key="a.txt",
            payload=StreamPayload(io.BytesIO(b"hi")),
            state=FileState.DELETE,
        )

        result = Publisher(store, cache).publish(record)

        assert result is record
        assert result.state == FileState.DELETE
        assert store.calls == []


class TestStateResolution:
    """Tests for the create / update / skip / cache decisions."""

    def test_new_file_is_created(self, store, cache):
        """A file absent remotely is uploaded and marked create."""
        record = FileRecord.from_bytes("a.txt", b"hi")

        result = Publisher(store, cache).publish(record)
        cache.record(result)

        assert result.state == FileState.CREATE
        assert result.fingerprint == calculate_fingerprint(b"hi")
        assert isinstance(result.timestamp, datetime)
        assert store.objects["a.txt"] == b"hi"
        assert cache.get("a.txt") == calculate_fingerprint(b"hi")

    def test_republish_unchanged_is_cache_hit(self, store, cache):
        """Publishing the same content twice hits the cache the second time."""
        publisher = Publisher(store, cache)
        cache.record(publisher.publish(FileRecord.from_bytes("a.txt", b"hi")))
        store.calls.clear()

        record = FileRecord.from_bytes("a.txt", b"hi")
        result = publisher.publish(record)

        assert result.state == FileState.CACHE_HIT
        assert store.calls == []
        assert result.headers == {}

    def test_changed_content_is_updated(self, store, cache):
        """Different remote content is overwritten."""
        store.objects["a.txt"] = b"old"

        result = Publisher(store, cache).publish(FileRecord.from_bytes("a.txt", b"new"))

        assert result.state == FileState.UPDATE
        assert store.objects["a.txt"] == b"new"

    def test_identical_remote_is_skipped(self, store, cache):
        """A remote object with the same fingerprint is not uploaded again."""
        store.objects["a.txt"] = b"hi"

        result = Publisher(store, cache).publish(FileRecord.from_bytes("a.txt", b"hi"))

        assert result.state == FileState.SKIP
        assert result.fingerprint == calculate_fingerprint(b"hi")
        assert store.call_names() == ["head_object"]

    def test_skip_records_remote_timestamp(self, cache):
        """Skipped files carry the remote last-modified time."""
        modified = datetime(2024, 5, 1, tzinfo=timezone.utc)
        mock_store = Mock()
        mock_store.head_object.return_value = RemoteObjectMeta(
            key="a.txt",
            fingerprint=calculate_fingerprint(b"hi"),
            last_modified=modified,
        )

        result = Publisher(mock_store, cache).publish(FileRecord.from_bytes("a.txt", b"hi"))

        assert result.state == FileState.SKIP
        assert result.timestamp == modified
        mock_store.put_object.assert_not_called()

    def test_stale_cache_entry_falls_back_to_remote(self, store, cache):
        """A cache entry with another fingerprint does not prevent the upload."""
        cache.set("a.txt", calculate_fingerprint(b"old"))

        result = Publisher(store, cache).publish(FileRecord.from_bytes("a.txt", b"new"))

        assert result.state == FileState.CREATE

    def test_remote_without_fingerprint_is_updated(self, cache):
        """When the store exposes no fingerprint the object is rewritten."""
        mock_store = Mock()
        mock_store.head_object.return_value = RemoteObjectMeta(key="a.txt")

        result = Publisher(mock_store, cache).publish(FileRecord.from_bytes("a.txt", b"hi"))

        assert result.state == FileState.UPDATE
        mock_store.put_object.assert_called_once()


class TestModes:
    """Tests for force, create-only and simulate options."""

    def test_create_only_skips_existing_different_content(self, store, cache):
        """Create-only never updates an existing object."""
        store.objects["a.txt"] = b"old"
        options = PublishOptions(create_only=True)

        result = Publisher(store, cache, options).publish(
            FileRecord.from_bytes("a.txt", b"new")
        )

        assert result.state == FileState.SKIP
        assert store.objects["a.txt"] == b"old"

    def test_create_only_still_creates(self, store, cache):
        """Create-only uploads new objects."""
        options = PublishOptions(create_only=True)

        result = Publisher(store, cache, options).publish(
            FileRecord.from_bytes("a.txt", b"new")
        )

        assert result.state == FileState.CREATE

    def test_force_ignores_cache(self, store, cache):
        """Force mode re-queries and re-uploads cached files."""
        cache.set("a.txt", calculate_fingerprint(b"hi"))
        store.objects["a.txt"] = b"hi"
        options = PublishOptions(force=True)

        result = Publisher(store, cache, options).publish(FileRecord.from_bytes("a.txt", b"hi"))

        assert result.state == FileState.UPDATE
        assert store.call_names() == ["head_object", "put_object"]

    def test_force_with_create_only_skips_existing(self, store, cache):
        """Create-only wins over force for existing objects."""
        store.objects["a.txt"] = b"hi"
        options = PublishOptions(force=True, create_only=True)

        result = Publisher(store, cache, options).publish(FileRecord.from_bytes("a.txt", b"hi"))

        assert result.state == FileState.SKIP

    def test_simulate_makes_no_calls(self, store, cache):
        """Simulate mode computes headers without contacting the store."""
        options = PublishOptions(simulate=True)

        result = Publisher(store, cache, options).publish(
            FileRecord.from_bytes("index.html", b"<p>hi</p>")
        )

        assert result.state == FileState.SIMULATE
        assert result.headers["Content-Type"] == "text/html; charset=utf-8"
        assert store.calls == []

    def test_simulate_still_reports_cache_hits(self, store, cache):
        """Cache hits are detected before the simulate check."""
        cache.set("a.txt", calculate_fingerprint(b"hi"))
        options = PublishOptions(simulate=True)

        result = Publisher(store, cache, options).publish(FileRecord.from_bytes("a.txt", b"hi"))

        assert result.state == FileState.CACHE_HIT


class TestHeaders:
    """Tests for the headers attached on upload."""

    def test_default_headers(self, store, cache):
        """Uploads carry ACL, content type and length."""
        Publisher(store, cache).publish(FileRecord.from_bytes("a.txt", b"hi"))

        assert store.headers["a.txt"] == {
            "x-amz-acl": "public-read",
            "Content-Type": "text/plain; charset=utf-8",
            "Content-Length": "2",
        }

    def test_no_acl(self, store, cache):
        """The ACL header is omitted with no_acl."""
        options = PublishOptions(no_acl=True)
        Publisher(store, cache, options).publish(FileRecord.from_bytes("a.txt", b"hi"))
        assert "x-amz-acl" not in store.headers["a.txt"]

    def test_caller_headers_override(self, store, cache):
        """Caller-supplied headers win over inferred and default ones."""
        options = PublishOptions(
            headers={
                "Cache-Control": "max-age=60",
                "Content-Type": "text/x-custom",
                "x-amz-acl": "private",
            }
        )
        Publisher(store, cache, options).publish(FileRecord.from_bytes("a.txt", b"hi"))

        headers = store.headers["a.txt"]
        assert headers["Cache-Control"] == "max-age=60"
        assert headers["Content-Type"] == "text/x-custom"
        assert headers["x-amz-acl"] == "private"

    def test_upstream_headers_are_kept(self, store, cache):
        """Headers set by an earlier stage are not replaced by inferred values."""
        record = FileRecord.from_bytes("a.txt", b"hi")
        record.headers["Content-Type"] = "text/markdown"

        Publisher(store, cache).publish(record)

        assert store.headers["a.txt"]["Content-Type"] == "text/markdown"

    def test_compress_suffix_sets_encoding(self, store, cache):
        """Precompressed files get their encoding and original content type."""
        options = PublishOptions(compress={".br": "br", ".gz": "gzip"})
        record = FileRecord.from_bytes("app.js.br", b"\x1b\x00")

        result = Publisher(store, cache, options).publish(record)

        headers = store.headers["app.js.br"]
        assert headers["Content-Encoding"] == "br"
        assert headers["Content-Type"].endswith("javascript; charset=utf-8")
        assert result.original_path == "app.js"

    def test_upstream_encoding_not_overwritten(self, store, cache):
        """A Content-Encoding set upstream wins over the compress mapping."""
        options = PublishOptions(compress={".gz": "x-gzip"})
        record = FileRecord.from_bytes("style.css.gz", b"data")
        record.headers["Content-Encoding"] = "gzip"

        Publisher(store, cache, options).publish(record)

        assert store.headers["style.css.gz"]["Content-Encoding"] == "gzip"
        assert store.headers["style.css.gz"]["Content-Type"] == "text/css; charset=utf-8"


class TestFailures:
    """Tests for remote failures."""

    def test_query_failure_propagates(self, cache):
        """Metadata errors other than absence abort the file."""
        mock_store = Mock()
        mock_store.head_object.side_effect = RemoteQueryError("boom")

        with pytest.raises(RemoteQueryError):
            Publisher(mock_store, cache).publish(FileRecord.from_bytes("a.txt", b"hi"))
        mock_store.put_object.assert_not_called()

    def test_write_failure_propagates_without_state(self, cache):
        """A failed upload leaves the record undecided and the cache untouched."""
        mock_store = Mock()
        mock_store.head_object.return_value = None
        mock_store.put_object.side_effect = RemoteWriteError("denied")
        record = FileRecord.from_bytes("a.txt", b"hi")

        with pytest.raises(RemoteWriteError):
            Publisher(mock_store, cache).publish(record)

        assert record.state is None
        assert "a.txt" not in cache
