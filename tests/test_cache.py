"""Tests for the two-tier response cache and its stores."""

import json

import pytest

from photocaption.captions.cache import DURABLE_KEY, JsonFileStore, MemoryStore, ResponseCache, cache_key
from photocaption.captions.schema import CacheEntry, CaptionIdea, CaptionResult, GenerationOptions, Tag


def _entry(caption: str = "Main") -> CacheEntry:
    return CacheEntry(
        tags=[Tag(label="Beach"), Tag(label="dog")],
        captions=CaptionResult(main_caption=caption, caption_ideas=[CaptionIdea(caption="idea", hashtag="#x")]),
    )


class BrokenStore:
    def get(self, key):
        raise OSError("storage unavailable")

    def set(self, key, value):
        raise OSError("disk full")


class TestFingerprint:
    def test_equal_options_share_a_key(self) -> None:
        a = GenerationOptions(mode="custom", tone="deadpan", tags=["a", "b"])
        b = GenerationOptions(tags=("a", "b"), tone="deadpan", mode="custom")
        assert cache_key("img", a) == cache_key("img", b)

    def test_different_options_differ(self) -> None:
        assert cache_key("img", GenerationOptions()) != cache_key("img", GenerationOptions(tone="sarcastic"))
        assert cache_key("img", GenerationOptions(tags=("a", "b"))) != cache_key("img", GenerationOptions(tags=("b", "a")))


class TestResponseCache:
    def test_put_writes_both_tiers(self, store) -> None:
        cache = ResponseCache(store)
        options = GenerationOptions()
        cache.put("img-1", options, _entry())

        assert cache.get_by_fingerprint("img-1", options) == _entry()
        assert cache.get_by_image("img-1") == _entry()
        assert "img-1" in json.loads(store.get(DURABLE_KEY))

    def test_volatile_tier_is_options_sensitive(self) -> None:
        cache = ResponseCache()
        cache.put("img-1", GenerationOptions(), _entry())
        assert cache.get_by_fingerprint("img-1", GenerationOptions(mode="custom")) is None

    def test_durable_tier_is_options_insensitive(self) -> None:
        cache = ResponseCache()
        cache.put("img-1", GenerationOptions(), _entry("auto run"))
        cache.put("img-1", GenerationOptions(mode="custom", tone="deadpan"), _entry("custom run"))

        assert cache.get_by_image("img-1").captions.main_caption == "custom run"

    def test_durable_write_replaces_whole_entry(self) -> None:
        cache = ResponseCache()
        cache.put("img-1", GenerationOptions(), _entry())
        cache.put("img-1", GenerationOptions(), CacheEntry(tags=[Tag(label="only")]))

        entry = cache.get_by_image("img-1")
        assert entry.tags == [Tag(label="only")]
        assert entry.captions is None

    def test_entries_for_other_images_survive(self) -> None:
        cache = ResponseCache()
        cache.put("a", GenerationOptions(), _entry("A"))
        cache.put("b", GenerationOptions(), _entry("B"))
        assert cache.get_by_image("a").captions.main_caption == "A"

    def test_clear_volatile_keeps_durable(self) -> None:
        cache = ResponseCache()
        cache.put("img-1", GenerationOptions(), _entry())
        cache.clear_volatile()

        assert cache.volatile_size == 0
        assert cache.get_by_fingerprint("img-1", GenerationOptions()) is None
        assert cache.get_by_image("img-1") is not None

    def test_durable_survives_new_cache_instance(self, store) -> None:
        ResponseCache(store).put("img-1", GenerationOptions(), _entry())
        fresh = ResponseCache(store)

        assert fresh.get_by_fingerprint("img-1", GenerationOptions()) is None
        assert fresh.get_by_image("img-1") == _entry()

    def test_broken_store_is_soft(self) -> None:
        cache = ResponseCache(BrokenStore())
        cache.put("img-1", GenerationOptions(), _entry())

        assert cache.get_by_image("img-1") is None
        # the volatile tier still works
        assert cache.get_by_fingerprint("img-1", GenerationOptions()) == _entry()

    @pytest.mark.parametrize("raw", ["{not json", '{"img-1": {"tags": "nope"}}', '["list"]'])
    def test_corrupt_durable_data_reads_as_miss(self, raw) -> None:
        store = MemoryStore()
        store.set(DURABLE_KEY, raw)
        assert ResponseCache(store).get_by_image("img-1") is None

    def test_corrupt_durable_data_is_replaced_on_write(self) -> None:
        store = MemoryStore()
        store.set(DURABLE_KEY, "{not json")
        cache = ResponseCache(store)
        cache.put("img-1", GenerationOptions(), _entry())
        assert cache.get_by_image("img-1") == _entry()


class TestJsonFileStore:
    def test_roundtrip_and_persistence(self, tmp_path) -> None:
        path = tmp_path / "nested" / "cache.json"
        JsonFileStore(path).set("k", "v")

        assert JsonFileStore(path).get("k") == "v"
        assert JsonFileStore(path).get("missing") is None
        assert list(path.parent.glob("*.tmp")) == []

    def test_missing_file_is_empty(self, tmp_path) -> None:
        assert JsonFileStore(tmp_path / "nope.json").get("k") is None

    def test_non_object_document_raises(self, tmp_path) -> None:
        path = tmp_path / "cache.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            JsonFileStore(path).get("k")

    def test_cache_over_file_store(self, tmp_path) -> None:
        path = tmp_path / "cache.json"
        ResponseCache(JsonFileStore(path)).put("img-1", GenerationOptions(), _entry())

        assert ResponseCache(JsonFileStore(path)).get_by_image("img-1") == _entry()

    def test_cache_over_corrupt_file(self, tmp_path) -> None:
        path = tmp_path / "cache.json"
        path.write_text("{{{", encoding="utf-8")
        cache = ResponseCache(JsonFileStore(path))

        assert cache.get_by_image("img-1") is None
        # the write path starts fresh when the document can't be read
        cache.put("img-1", GenerationOptions(), _entry())
        assert cache.get_by_image("img-1") == _entry()
