from anime_hero.models import (
    SlideRecord,
    Episodes,
    MasterDocument,
    sort_by_rank,
    find_slide,
)
from tests.helpers import slide


def test_feed_keys_and_optional_fields():
    data = slide("blue-lock").to_dict()
    assert {"title", "alternativeTitle", "id", "poster", "posterType", "rank", "type",
            "quality", "duration", "aired", "synopsis", "keywords", "episodes"} <= set(data)
    assert "logo" not in data
    assert "publishedUrl" not in data

    data = slide("blue-lock", logo="https://x/logo.png", publishedUrl="https://x/p.json").to_dict()
    assert data["logo"] == "https://x/logo.png"
    assert data["publishedUrl"] == "https://x/p.json"


def test_from_dict_tolerates_loose_input():
    record = SlideRecord.from_dict({
        "title": "Naruto",
        "id": "naruto",
        "rank": "3",
        "keywords": "naruto",
        "episodes": {"sub": "220", "dub": None},
        "logo": None,
        "studio": "Pierrot",
    })
    assert record.rank == 3
    assert record.keywords == ["naruto"]
    assert record.episodes == Episodes(sub=220, dub=0, eps=0)
    assert record.logo == ""
    assert record.slug == "naruto"


def test_sort_by_rank_is_stable():
    slides = [slide("c", rank=2), slide("a", rank=1), slide("b", rank=2), slide("z", rank=0)]
    assert [s.id for s in sort_by_rank(slides)] == ["z", "a", "c", "b"]


def test_find_slide():
    slides = [slide("a"), slide("b")]
    assert find_slide(slides, "b").id == "b"
    assert find_slide(slides, "nope") is None


class TestMasterDocument:
    def test_non_mapping_payloads_are_empty(self):
        assert MasterDocument.from_dict(None).users == {}
        assert MasterDocument.from_dict([]).users == {}
        assert MasterDocument.from_dict({"users": []}).users == {}

    def test_entry_username_comes_from_key(self):
        doc = MasterDocument.from_dict({
            "users": {
                "gojo": {
                    "info": {"joinedAt": "2024-01-01T00:00:00+00:00", "lastActive": "2024-01-02T00:00:00+00:00"},
                    "library": [{"title": "JJK", "id": "jujutsu-kaisen"}, "junk"],
                    "lastUpdated": "2024-01-02T00:00:00+00:00",
                }
            }
        })
        entry = doc.entry("gojo")
        assert entry.info.username == "gojo"
        assert [s.id for s in entry.library] == ["jujutsu-kaisen"]

    def test_non_mapping_entry_is_kept_but_reads_as_missing(self):
        doc = MasterDocument.from_dict({"users": {"carol": None}})
        assert doc.entry("carol") is None
        assert doc.to_dict() == {"users": {"carol": None}}

    def test_round_trip_keeps_other_fields(self):
        raw = {
            "users": {
                "gojo": {
                    "info": {"username": "gojo", "joinedAt": "t0", "lastActive": "t1"},
                    "library": [slide("a").to_dict()],
                    "lastUpdated": "t1",
                }
            }
        }
        assert MasterDocument.from_dict(raw).to_dict() == raw
