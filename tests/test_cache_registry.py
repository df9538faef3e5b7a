import pytest

from shipdesk.cache.registry import CacheRegistry, params_key
from shipdesk.cache.tags import ALL_TAGS, GLOBAL_TAGS, IDENTITY_SCOPED_TAGS, CacheTag


def test_every_tag_starts_stale():
    reg = CacheRegistry()

    assert set(reg.stale_tags()) == set(ALL_TAGS)
    assert reg.get(CacheTag.ORDER) is None


def test_put_marks_tag_fresh_and_serves_entry():
    reg = CacheRegistry()

    assert reg.put(CacheTag.ORDER, {"page": 1}, ["o1"], owner="s1", epoch=reg.epoch(CacheTag.ORDER))

    assert reg.is_fresh("Order")
    entry = reg.get(CacheTag.ORDER, {"page": 1})
    assert entry is not None and entry.data == ["o1"] and entry.owner == "s1"
    assert reg.get(CacheTag.ORDER, {"page": 2}) is None


def test_invalidate_drops_entries_and_bumps_epoch():
    reg = CacheRegistry()
    reg.put(CacheTag.PROFILE, None, {"name": "A"}, owner="s1", epoch=0)
    reg.put(CacheTag.ORDER, None, [], owner="s1", epoch=0)

    reg.invalidate([CacheTag.PROFILE])

    assert not reg.is_fresh(CacheTag.PROFILE)
    assert reg.entries(CacheTag.PROFILE) == []
    assert reg.epoch(CacheTag.PROFILE) == 1
    assert reg.is_fresh(CacheTag.ORDER)


def test_put_from_before_invalidation_is_dropped():
    reg = CacheRegistry()
    epoch = reg.epoch(CacheTag.NOTIFICATIONS)
    reg.invalidate([CacheTag.NOTIFICATIONS])

    assert reg.put(CacheTag.NOTIFICATIONS, None, ["old"], owner="s0", epoch=epoch) is False
    assert not reg.is_fresh(CacheTag.NOTIFICATIONS)
    assert reg.entries(CacheTag.NOTIFICATIONS) == []


def test_invalidate_all_marks_everything_stale():
    reg = CacheRegistry()
    for tag in ALL_TAGS:
        reg.put(tag, None, tag.value, owner=None, epoch=reg.epoch(tag))

    reg.invalidate_all()

    assert set(reg.stale_tags()) == set(ALL_TAGS)


def test_unknown_tag_is_rejected():
    with pytest.raises(ValueError):
        CacheRegistry().is_fresh("Bogus")


def test_registry_limited_to_some_tags_rejects_others():
    reg = CacheRegistry(tags=[CacheTag.ORDER])
    with pytest.raises(KeyError):
        reg.invalidate([CacheTag.PROFILE])


def test_params_key_ignores_ordering():
    assert params_key({"a": 1, "b": 2}) == params_key({"b": 2, "a": 1})
    assert params_key(None) == params_key({}) == ""


def test_tag_partition_covers_all_tags():
    assert set(IDENTITY_SCOPED_TAGS) | GLOBAL_TAGS == set(ALL_TAGS)
    assert not set(IDENTITY_SCOPED_TAGS) & GLOBAL_TAGS
