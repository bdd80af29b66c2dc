"""Tests for SQLiteMemoryRepository: unit of work, identity map, clear."""

from memory.models import EpisodicMemory, ProceduralMemory, SemanticMemory
from memory.store import SQLiteMemoryRepository


def _fact(key="user_name", value="Hans", confidence=0.9, sources=("e1",)):
    return SemanticMemory(key=key, value=value, confidence=confidence, source_entry_ids=list(sources))


class TestUnitOfWork:
    def test_insert_visible_before_save(self, repo):
        repo.insert(_fact())
        assert len(repo.fetch_all(SemanticMemory)) == 1

    def test_rollback_discards_inserts(self, repo):
        repo.insert(_fact())
        repo.rollback()
        assert repo.fetch_all(SemanticMemory) == []

    def test_save_persists_across_instances(self, repo, tmp_path):
        repo.insert(_fact())
        repo.save()

        other = SQLiteMemoryRepository(tmp_path / "memory.db")
        rows = other.fetch_all(SemanticMemory)
        assert len(rows) == 1
        assert rows[0].value == "Hans"
        assert rows[0].source_entry_ids == ["e1"]

    def test_in_place_edit_saved(self, repo, tmp_path):
        repo.insert(ProceduralMemory(pattern="Late night writing", preference="Short"))
        repo.save()

        row = repo.fetch_all(ProceduralMemory)[0]
        row.frequency += 2
        row.source_entry_ids.append("e9")
        repo.save()

        fresh = SQLiteMemoryRepository(tmp_path / "memory.db").fetch_all(ProceduralMemory)[0]
        assert fresh.frequency == 3
        assert fresh.source_entry_ids == ["e9"]

    def test_identity_map_returns_same_object(self, repo):
        repo.insert(_fact())
        repo.save()
        first = repo.fetch_all(SemanticMemory)[0]
        second = repo.fetch_all(SemanticMemory, lambda m: m.key == "user_name")[0]
        assert first is second

    def test_delete_hidden_then_committed(self, repo, tmp_path):
        repo.insert(_fact())
        repo.save()
        row = repo.fetch_all(SemanticMemory)[0]
        repo.delete(row)
        assert repo.fetch_all(SemanticMemory) == []
        repo.save()
        assert SQLiteMemoryRepository(tmp_path / "memory.db").fetch_all(SemanticMemory) == []

    def test_delete_pending_insert(self, repo):
        memory = _fact()
        repo.insert(memory)
        repo.delete(memory)
        repo.save()
        assert repo.fetch_all(SemanticMemory) == []

    def test_creation_order(self, repo):
        for key in ["b", "a", "c"]:
            repo.insert(_fact(key=key))
        repo.save()
        assert [m.key for m in repo.fetch_all(SemanticMemory)] == ["b", "a", "c"]


class TestGetAndClear:
    def test_get(self, repo):
        memory = EpisodicMemory(event="Moved house", date="2026-02-05", source_entry_id="e1")
        repo.insert(memory)
        repo.save()
        assert repo.get(EpisodicMemory, memory.id).event == "Moved house"
        assert repo.get(EpisodicMemory, "missing") is None

    def test_clear_one_type(self, repo):
        repo.insert(_fact())
        repo.insert(_fact(key="city"))
        repo.insert(EpisodicMemory(event="x", date="2026-01-01", source_entry_id="e1"))
        repo.save()

        assert repo.clear(SemanticMemory) == 2
        assert repo.fetch_all(SemanticMemory) == []
        assert len(repo.fetch_all(EpisodicMemory)) == 1

    def test_stats(self, repo):
        repo.insert(_fact())
        repo.insert(ProceduralMemory(pattern="p", preference="q"))
        repo.save()
        assert repo.stats() == {"semantic": 1, "episodic": 0, "procedural": 1}

    def test_optional_fields_round_trip(self, repo, tmp_path):
        repo.insert(ProceduralMemory(pattern="p", preference="q", trigger="deadlines"))
        repo.insert(EpisodicMemory(event="e", date="2026-01-01", source_entry_id="s"))
        repo.save()

        fresh = SQLiteMemoryRepository(tmp_path / "memory.db")
        assert fresh.fetch_all(ProceduralMemory)[0].trigger == "deadlines"
        episodic = fresh.fetch_all(EpisodicMemory)[0]
        assert episodic.emotion is None
        assert episodic.context is None
