"""Tests for the Inspector facade."""

import struct

import pytest

from boltfile import write_bolt
from boltview import Inspector
from boltview.errors import DecodeError, NotFound
from boltview.kv.bolt import Bolt
from boltview.kv.memory import Memory

EPOCH_ZERO = struct.pack(">Bqih", 1, 62135596800, 0, -1)
ENVELOPE = b"\x0a\x03a/b\x12\x05hello"


def tree():
    return {
        "v1": {
            "k8s.io": {
                "containers": {
                    "nginx/sidecar": {
                        "createdat": EPOCH_ZERO,
                        "spec": ENVELOPE,
                        "blob": bytes(300),
                        "doc": b'{"big": "' + b"y" * 1200 + b'"}',
                    },
                },
            },
        },
        "other": {"note": b"plain text"},
    }


@pytest.fixture(params=["memory", "bolt"])
def inspector(request, tmp_path):
    if request.param == "memory":
        return Inspector(Memory(tree()))
    return Inspector(Bolt(write_bolt(tmp_path / "meta.db", tree())))


BUCKET = "v1/k8s.io/containers/nginx/sidecar"


class TestInspectorBuckets:
    def test_buckets(self, inspector):
        trees = inspector.buckets()
        assert [t.name for t in trees] == ["other", "v1"]
        containers = trees[1].sub_buckets[0].sub_buckets[0]
        assert containers.sub_buckets[0].name == "nginx/sidecar"
        assert containers.sub_buckets[0].path == BUCKET

    def test_bucket_detail(self, inspector):
        summary = inspector.bucket(BUCKET)
        assert summary.depth == 0
        assert summary.expanded
        assert summary.name == "sidecar"
        assert summary.path == BUCKET
        assert [kv.key for kv in summary.keys] == ["blob", "createdat", "doc", "spec"]
        doc = summary.keys[2]
        assert doc.kind == "JSON"
        assert doc.preview.endswith("... (truncated)")

    def test_bucket_not_found(self, inspector):
        with pytest.raises(NotFound):
            inspector.bucket("v1/missing")


class TestInspectorKeys:
    def test_key_detail_shows_json_whole(self, inspector):
        kv = inspector.key(BUCKET, "doc")
        assert kv.kind == "JSON"
        assert "truncated" not in kv.preview

    def test_key_detail_bounds_hex(self, inspector):
        kv = inspector.key(BUCKET, "blob")
        assert kv.preview.splitlines()[-1] == "... 44 more bytes"

    def test_key_full_unbounds_hex(self, inspector):
        kv = inspector.key(BUCKET, "blob", full=True)
        assert len(kv.preview.splitlines()) == 19

    def test_missing_key(self, inspector):
        with pytest.raises(NotFound) as excinfo:
            inspector.key(BUCKET, "nope")
        assert excinfo.value.key == "nope"

    def test_raw_is_a_copy(self, inspector):
        assert inspector.raw("other", "note") == b"plain text"


class TestInspectorDecode:
    def test_decode_time(self, inspector):
        decoded = inspector.decode_time(BUCKET, "createdat")
        assert decoded.unix_seconds == 0

    def test_decode_time_on_wrong_value(self, inspector):
        with pytest.raises(DecodeError):
            inspector.decode_time("other", "note")

    def test_decode_envelope(self, inspector):
        env = inspector.decode_envelope(BUCKET, "spec")
        assert env.type_url == "a/b"
        assert env.payload == b"hello"


class TestInspectorSearchAndStats:
    def test_search(self, inspector):
        hits = inspector.search("NOTE")
        assert [h.path for h in hits] == ["other/note"]

    def test_empty_query(self, inspector):
        with pytest.raises(ValueError, match="empty"):
            inspector.search("")

    def test_stats(self, inspector):
        stats = inspector.stats()
        assert stats["top_level_buckets"] == 2
        assert stats["storage"] in ("memory", "bolt")


class TestInspectorSnapshots:
    def test_every_call_opens_and_closes_a_view(self):
        backend = Memory(tree())
        opened = []
        original = backend.view

        def counting_view():
            opened.append(True)
            return original()

        backend.view = counting_view  # type: ignore[method-assign]
        inspector = Inspector(backend)
        inspector.buckets()
        inspector.key("other", "note")
        with pytest.raises(NotFound):
            inspector.key("other", "missing")
        assert len(opened) == 3

    def test_view_released_on_error(self, tmp_path):
        backend = Bolt(write_bolt(tmp_path / "meta.db", tree()))
        with pytest.raises(NotFound):
            Inspector(backend).bucket("missing")
        assert Inspector(backend).raw("other", "note") == b"plain text"
