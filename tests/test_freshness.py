"""
Tests for lazy index rebuilds: dirty/clean state, enable/disable and the
store-backed shared flag.
"""

from unittest.mock import MagicMock, patch

import pytest

from taggable.tags.state import IndexFreshness, LocalIndexState, MongoIndexState


class TestLocalIndexState:

    def test_starts_dirty(self):
        assert LocalIndexState().is_dirty()

    def test_clean_after_marking_current_version(self):
        state = LocalIndexState()
        state.mark_clean(state.current_version())
        assert not state.is_dirty()

    def test_dirty_again_after_write(self):
        state = LocalIndexState()
        state.mark_clean(state.current_version())
        state.mark_dirty()
        assert state.is_dirty()

    def test_marking_an_older_version_does_not_clean(self):
        state = LocalIndexState()
        version = state.current_version()
        state.mark_dirty()
        state.mark_clean(version)
        assert state.is_dirty()


class TestMongoIndexState:

    def test_missing_state_is_dirty(self, mongo_db):
        assert MongoIndexState(mongo_db["meta"]).is_dirty()

    def test_round_trip(self, mongo_db):
        state = MongoIndexState(mongo_db["meta"])
        state.mark_clean(state.current_version())
        assert not state.is_dirty()

        state.mark_dirty()
        assert state.is_dirty()
        assert state.current_version() == 1

        state.mark_clean(state.current_version())
        assert not state.is_dirty()

    def test_shared_between_instances(self, mongo_db):
        writer = MongoIndexState(mongo_db["meta"])
        reader = MongoIndexState(mongo_db["meta"])
        writer.mark_clean(writer.current_version())

        writer.mark_dirty()
        assert reader.is_dirty()
        reader.mark_clean(reader.current_version())
        assert not writer.is_dirty()

    def test_clean_never_moves_backwards(self, mongo_db):
        state = MongoIndexState(mongo_db["meta"])
        state.mark_dirty()
        state.mark_dirty()
        state.mark_clean(2)
        state.mark_clean(1)
        assert not state.is_dirty()


class TestIndexFreshness:
    """The controller, with a mocked builder."""

    def _controller(self, enabled=True):
        builder = MagicMock()
        builder.rebuild.return_value = 0
        return IndexFreshness(builder, LocalIndexState(), enabled=enabled), builder

    def test_read_rebuilds_only_when_dirty(self):
        freshness, builder = self._controller()
        assert freshness.ensure_fresh() is True
        assert freshness.ensure_fresh() is False
        builder.rebuild.assert_called_once()

    def test_many_writes_one_rebuild(self):
        freshness, builder = self._controller()
        freshness.ensure_fresh()
        for i in range(50):
            freshness.after_save([], [f"tag{i}"])
        freshness.ensure_fresh()
        freshness.ensure_fresh()
        assert builder.rebuild.call_count == 2

    def test_unchanged_tags_do_not_dirty(self):
        freshness, _ = self._controller()
        freshness.ensure_fresh()
        assert freshness.after_save(["a", "b"], ["a", "b"]) is False
        assert not freshness.is_dirty()

    def test_created_document_dirties_even_without_tags(self):
        freshness, _ = self._controller()
        freshness.ensure_fresh()
        assert freshness.after_save(None, [], created=True) is True

    def test_delete_dirties(self):
        freshness, _ = self._controller()
        freshness.ensure_fresh()
        assert freshness.after_delete() is True
        assert freshness.is_dirty()

    def test_disabled_ignores_writes_and_reads(self):
        freshness, builder = self._controller(enabled=False)
        assert freshness.after_save([], ["a"]) is False
        assert freshness.after_delete() is False
        assert freshness.ensure_fresh() is False
        builder.rebuild.assert_not_called()

    def test_reindex_is_unconditional(self):
        freshness, builder = self._controller(enabled=False)
        freshness.reindex()
        freshness.reindex()
        assert builder.rebuild.call_count == 2

    def test_write_during_rebuild_keeps_dirty(self):
        state = LocalIndexState()
        builder = MagicMock()
        builder.rebuild.side_effect = lambda: state.mark_dirty() or 0
        freshness = IndexFreshness(builder, state)

        assert freshness.ensure_fresh() is True
        assert freshness.is_dirty()

    def test_failed_rebuild_stays_dirty(self):
        freshness, builder = self._controller()
        builder.rebuild.side_effect = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            freshness.ensure_fresh()
        assert freshness.is_dirty()


class TestLazyRebuildThroughCollection:
    """Freshness as seen through TaggedCollection reads and writes."""

    def test_writes_do_not_rebuild(self, tagged):
        with patch.object(tagged.builder, "rebuild", wraps=tagged.builder.rebuild) as rebuild:
            for i in range(10):
                tagged.create(tags=f"t{i},common")
            rebuild.assert_not_called()

            assert "common" in tagged.tags()
            tagged.tags_with_weight()
            tagged.tags_with_uniqueness()
        rebuild.assert_called_once()

    def test_disabled_index_returns_last_build(self, tagged):
        tagged.create(tags="a")
        assert tagged.tags() == ["a"]

        tagged.disable_index()
        with patch.object(tagged.builder, "rebuild", wraps=tagged.builder.rebuild) as rebuild:
            tagged.create(tags="b")
            assert tagged.tags() == ["a"]
        rebuild.assert_not_called()

        # Writes made while disabled never dirtied the index
        tagged.enable_index()
        assert tagged.tags() == ["a"]
        tagged.reindex()
        assert tagged.tags() == ["a", "b"]

    def test_disabled_from_configuration(self, make_tagged):
        tagged = make_tagged(index_enabled=False)
        tagged.create(tags="sample,tags")
        assert tagged.tags() == []

    def test_shared_state_across_processes(self, make_tagged):
        first = make_tagged(shared_state=True)
        second = make_tagged(shared_state=True)
        assert isinstance(first.freshness.state, MongoIndexState)

        first.create(tags="a")
        assert second.tags() == ["a"]
        assert not first.freshness.is_dirty()

        with patch.object(first.builder, "rebuild", wraps=first.builder.rebuild) as rebuild:
            assert first.tags() == ["a"]
        rebuild.assert_not_called()

    def test_local_state_is_per_instance(self, make_tagged):
        first = make_tagged()
        second = make_tagged()
        first.create(tags="a")
        first.tags()
        assert second.freshness.is_dirty()
