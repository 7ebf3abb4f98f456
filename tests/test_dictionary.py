"""
Tests for the surrogate-key dictionary cache.
"""

import pytest

from trace_wrangler.dictionary import SurrogateDictionary
from trace_wrangler.errors import DictionaryError
from trace_wrangler.model import Context, Point


@pytest.fixture
def contexts():
    return SurrogateDictionary("contexts")


class TestLookupAndRegister:
    """Tests for lookup, resolve and register."""

    def test_empty(self, contexts):
        """Test a new dictionary is empty and starts at id 1."""
        assert len(contexts) == 0
        assert contexts.next_id == 1
        assert contexts.lookup(Context("baeaaaaa", 0)) is None

    def test_register_then_resolve(self, contexts):
        """Test a registered key resolves to its id."""
        key = Context("baeaaaaa", 0)
        contexts.register(key, 1)

        assert contexts.lookup(key) == 1
        assert contexts.resolve(key) == 1
        assert key in contexts
        assert contexts.next_id == 2

    def test_resolve_unknown_raises_key_error(self, contexts):
        """Test resolving a missing key raises KeyError."""
        with pytest.raises(KeyError):
            contexts.resolve(Context("missing", 1))

    def test_lookup_has_no_side_effect(self, contexts):
        """Test lookup never adds entries."""
        contexts.lookup(Context("baeaaaaa", 0))

        assert len(contexts) == 0

    def test_register_duplicate_key_rejected(self, contexts):
        """Test registering a known key fails."""
        contexts.register(Context("a", 0), 1)

        with pytest.raises(DictionaryError):
            contexts.register(Context("a", 0), 2)

    def test_register_non_monotonic_id_rejected(self, contexts):
        """Test ids must increase."""
        contexts.register(Context("a", 0), 5)

        with pytest.raises(DictionaryError):
            contexts.register(Context("b", 0), 5)
        with pytest.raises(DictionaryError):
            contexts.register(Context("b", 0), 3)

    def test_keys_distinguish_all_fields(self):
        """Test keys differing in one field get separate ids."""
        points = SurrogateDictionary("points")
        points.register(Point("Started", ""), 1)
        points.register(Point("Started", "x"), 2)

        assert points.lookup(Point("Started", "")) == 1
        assert points.lookup(Point("Started", "x")) == 2


class TestPreload:
    """Tests for seeding from a sink."""

    def test_preload_sets_next_id_above_max(self, contexts):
        """Test next_id follows the largest preloaded id."""
        contexts.preload([(Context("a", 0), 3), (Context("b", 1), 7), (Context("c", 2), 1)])

        assert len(contexts) == 3
        assert contexts.next_id == 8
        assert contexts.lookup(Context("b", 1)) == 7

    def test_register_after_preload_cannot_collide(self, contexts):
        """Test new ids must exceed preloaded ones."""
        contexts.preload([(Context("a", 0), 4)])

        with pytest.raises(DictionaryError):
            contexts.register(Context("b", 0), 4)
        contexts.register(Context("b", 0), 5)

    def test_preload_duplicate_key(self, contexts):
        """Test a repeated key in the preload fails."""
        with pytest.raises(DictionaryError):
            contexts.preload([(Context("a", 0), 1), (Context("a", 0), 2)])

    def test_preload_duplicate_id(self, contexts):
        """Test a repeated id in the preload fails."""
        with pytest.raises(DictionaryError):
            contexts.preload([(Context("a", 0), 1), (Context("b", 0), 1)])


class TestDiscard:
    """Tests for dropping rolled-back entries."""

    def test_discard_restores_previous_state(self, contexts):
        """Test discarding returns the cache to its earlier state."""
        contexts.preload([(Context("a", 0), 1)])
        contexts.register(Context("b", 0), 2)
        contexts.register(Context("c", 0), 3)

        contexts.discard([Context("b", 0), Context("c", 0)])

        assert len(contexts) == 1
        assert contexts.next_id == 2
        assert Context("b", 0) not in contexts

    def test_discard_unknown_is_noop(self, contexts):
        """Test discarding unknown keys changes nothing."""
        contexts.register(Context("a", 0), 1)
        contexts.discard([Context("zzz", 9)])

        assert len(contexts) == 1

    def test_items_in_id_order(self, contexts):
        """Test items are listed by id."""
        contexts.preload([(Context("b", 0), 2), (Context("a", 0), 1)])

        assert list(contexts.items()) == [(Context("a", 0), 1), (Context("b", 0), 2)]
