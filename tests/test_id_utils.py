import pytest

from book_notes_storage import Book, EntityValidationError
from book_notes_storage.id_utils import (
    generate_entity_id,
    is_cache_hit,
    require_entity_id,
    validate_assigned_ids,
)


class TestGenerateEntityId:
    def test_hex_format(self):
        entity_id = generate_entity_id()
        assert len(entity_id) == 32
        int(entity_id, 16)

    def test_unique(self):
        assert len({generate_entity_id() for _ in range(100)}) == 100


class TestIsCacheHit:
    def test_none_is_miss(self):
        assert not is_cache_hit(None)

    def test_empty_id_is_miss(self):
        assert not is_cache_hit(Book(title="Placeholder"))

    def test_persisted_entity_is_hit(self):
        assert is_cache_hit(Book(id="b1"))


class TestRequireEntityId:
    def test_returns_id(self):
        assert require_entity_id(Book(id="b1"), "update") == "b1"

    def test_empty_id_raises(self):
        with pytest.raises(EntityValidationError) as exc_info:
            require_entity_id(Book(), "delete")
        assert "delete" in exc_info.value.reason


class TestValidateAssignedIds:
    def test_aligned_ids_pass(self):
        assert validate_assigned_ids(["a", "b"], 2) == ["a", "b"]

    def test_empty_batch(self):
        assert validate_assigned_ids([], 0) == []

    def test_count_mismatch_raises(self):
        with pytest.raises(EntityValidationError):
            validate_assigned_ids(["a"], 2)

    def test_empty_id_raises(self):
        with pytest.raises(EntityValidationError) as exc_info:
            validate_assigned_ids(["a", ""], 2)
        assert "position 1" in exc_info.value.reason
