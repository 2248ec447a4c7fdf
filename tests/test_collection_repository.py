"""
Tests for the song collection repository
"""
import pytest

from hymnal.models.access import AccessLevel
from hymnal.models.collection import CollectionStatus, SongCollection
from hymnal.models.song import Song, Verse
from hymnal.result import ErrorKind


@pytest.fixture
def collections(context):
    return context.collections


def ids(result):
    return [c.id for c in result.value]


class TestListing:
    def test_get_all_orders_by_sort_order(self, collections):
        assert ids(collections.get_all()) == ["JS", "SRD", "PREM", "STAFF"]
        assert ids(collections.get_all(include_inactive=True)) == ["JS", "SRD", "PREM", "STAFF", "OLD"]

    def test_ties_broken_by_name(self, collections, remote):
        remote.ref("song_collections/ZZ").set({"name": "Anthem Book", "sort_order": 1})
        assert ids(collections.get_all())[:2] == ["ZZ", "JS"]

    def test_access_filter(self, collections):
        result = collections.get_all(access_filter=lambda c: c.access_level == AccessLevel.PUBLIC)
        assert ids(result) == ["SRD"]

    def test_index_is_cached(self, collections, remote):
        collections.get_all()
        reads = remote.reads
        collections.get_all()
        collections.get_by_id("SRD")
        assert remote.reads == reads


class TestGetForUser:
    def test_anonymous_sees_locked_previews(self, collections, anonymous):
        assert ids(collections.get_for_user(anonymous)) == ["JS", "SRD", "PREM", "STAFF"]

    def test_anonymous_without_preview(self, collections, anonymous):
        assert ids(collections.get_for_user(anonymous, include_preview=False)) == ["SRD"]

    def test_free_user_does_not_see_admin_collections(self, collections, free_user):
        assert ids(collections.get_for_user(free_user)) == ["JS", "SRD", "PREM"]
        assert ids(collections.get_for_user(free_user, include_preview=False)) == ["JS", "SRD"]

    def test_premium_and_admin(self, collections, premium_user, admin_user):
        assert ids(collections.get_for_user(premium_user, include_preview=False)) == ["JS", "SRD", "PREM"]
        assert ids(collections.get_for_user(admin_user, include_preview=False)) == ["JS", "SRD", "PREM", "STAFF"]


class TestLookups:
    def test_get_by_id(self, collections):
        result = collections.get_by_id("PREM")
        assert result.ok
        assert result.value.name == "Premium Hymns"
        assert result.value.access_level == AccessLevel.PREMIUM

    def test_archived_collection_is_found_by_id(self, collections):
        assert collections.get_by_id("OLD").value.status == CollectionStatus.ARCHIVED

    def test_missing(self, collections):
        result = collections.get_by_id("NOPE")
        assert result.error == ErrorKind.NOT_FOUND

    def test_stats(self, collections):
        stats = collections.get_stats().value
        assert stats.total_collections == 5
        assert stats.active_collections == 4
        assert stats.public_collections == 2
        assert stats.total_songs == 5


class TestOffline:
    def test_no_cache_is_unavailable(self, collections, remote):
        remote.set_offline(True)
        result = collections.get_all()
        assert result.error == ErrorKind.REMOTE_UNAVAILABLE
        assert result.value == []
        assert not result.is_online

    def test_stale_index_served_offline(self, collections, remote, clock):
        collections.get_all()
        clock.advance(hours=25)
        remote.set_offline(True)

        result = collections.get_all()
        assert result.ok
        assert not result.is_online
        assert ids(result) == ["JS", "SRD", "PREM", "STAFF"]


class TestMutations:
    def test_create_with_generated_id(self, collections, remote, clock):
        result = collections.create(SongCollection("", name="Lagu Baru", sort_order=9), actor="u-admin")
        created = result.value
        assert created.id
        assert created.created_at == clock()
        assert created.created_by == "u-admin"
        assert remote.dump()["song_collections"][created.id]["name"] == "Lagu Baru"
        assert created.id in ids(collections.get_all())

    def test_update_invalidates_index(self, collections, clock):
        original = collections.get_by_id("SRD").value
        clock.advance(minutes=5)
        collections.update(original.with_changes(name="SRD Revised"), actor="u-super")

        updated = collections.get_by_id("SRD").value
        assert updated.name == "SRD Revised"
        assert updated.updated_by == "u-super"
        assert updated.updated_at == clock()

    def test_update_missing(self, collections):
        assert collections.update(SongCollection("NOPE")).error == ErrorKind.NOT_FOUND

    def test_delete_removes_songs_too(self, collections, remote):
        assert collections.delete("JS").ok
        tree = remote.dump()
        assert "JS" not in tree["song_collections"]
        assert "JS" not in tree["collection_songs"]
        assert collections.delete("JS").error == ErrorKind.NOT_FOUND

    def test_add_and_remove_song_refresh_count(self, collections, remote):
        song = Song("3", "Lagu Ketiga", (Verse("1", "Haleluya"),))
        assert collections.add_song("SRD", song).ok
        assert remote.ref("song_collections/SRD/song_count").get().value == 3
        assert collections.get_by_id("SRD").value.song_count == 3

        assert collections.remove_song("SRD", "3").ok
        assert remote.ref("song_collections/SRD/song_count").get().value == 2
        assert collections.remove_song("SRD", "3").error == ErrorKind.NOT_FOUND

    def test_add_song_to_missing_collection(self, collections):
        assert collections.add_song("NOPE", Song("1", "x")).error == ErrorKind.NOT_FOUND

    def test_offline_write(self, collections, remote):
        remote.set_offline(True)
        result = collections.delete("SRD")
        assert result.error == ErrorKind.REMOTE_UNAVAILABLE
