"""Tests for same-bucket duplicate detection."""

from gradeledger_data import GradingRecord
from gradeledger_data.dedup import find_duplicate_ids, find_duplicate_positions, mark_duplicates


class TestFindDuplicateIds:

    def test_newer_record_in_bucket_wins(self, make_record):
        records = [make_record("older", 1200), make_record("newer", 1700)]
        assert find_duplicate_ids(records) == ["older"]

    def test_order_does_not_matter(self, make_record):
        records = [make_record("newer", 1700), make_record("older", 1200)]
        assert find_duplicate_ids(records) == ["older"]

    def test_different_buckets_kept(self, make_record):
        # 500 ms apart but across a whole-second boundary
        records = [make_record("a", 1800), make_record("b", 2300)]
        assert find_duplicate_ids(records) == []

    def test_tie_keeps_first_in_sequence(self, make_record):
        records = [make_record("first", 1500), make_record("second", 1500)]
        assert find_duplicate_ids(records) == ["second"]

    def test_groups_are_independent(self, make_record):
        records = [make_record("a", 1100), make_record("b", 1200, question_key="q2")]
        assert find_duplicate_ids(records) == []

    def test_uncategorized_form_their_own_group(self, make_record):
        records = [
            make_record("a", 1100, question_key=None),
            make_record("b", 1200, question_key=None),
            make_record("c", 1300),
        ]
        assert find_duplicate_ids(records) == ["a"]

    def test_hidden_records_ignored(self, make_record):
        records = [make_record("a", 1900, is_hidden=True), make_record("b", 1100)]
        assert find_duplicate_ids(records) == []

    def test_group_filter(self, make_record):
        records = [
            make_record("a", 1100),
            make_record("b", 1200),
            make_record("c", 1100, question_key="q2"),
            make_record("d", 1200, question_key="q2"),
        ]
        assert find_duplicate_ids(records, group_key="q2") == ["c"]

    def test_three_in_one_bucket(self, make_record):
        records = [make_record("a", 1100), make_record("b", 1900), make_record("c", 1500)]
        assert find_duplicate_ids(records) == ["a", "c"]

    def test_bucket_width(self, make_record):
        records = [make_record("a", 1100), make_record("b", 4900)]
        assert find_duplicate_ids(records, bucket_ms=5000) == ["a"]


class TestMarkDuplicates:

    def test_hides_without_removing(self, make_record):
        records = [make_record("a", 1200), make_record("b", 1700)]
        report = mark_duplicates(records)

        assert [r.id for r in report.records] == ["a", "b"]
        assert report.records[0].is_hidden is True
        assert report.records[1].is_hidden is False
        assert report.hidden_ids == ["a"]
        assert report.hidden_count == 1

    def test_input_not_modified(self, make_record):
        records = [make_record("a", 1200), make_record("b", 1700)]
        mark_duplicates(records)
        assert records[0].is_hidden is False

    def test_stable_when_repeated(self, make_record):
        records = [make_record("a", 1200), make_record("b", 1700)]
        once = mark_duplicates(records)
        twice = mark_duplicates(once.records)

        assert twice.hidden_count == 0
        assert [r.is_hidden for r in twice.records] == [True, False]

    def test_shared_id_leaves_one_visible(self, make_record):
        records = [make_record("same", 1000), make_record("same", 1000)]
        report = mark_duplicates(records)

        assert [r.is_hidden for r in report.records] == [False, True]
        assert sum(not r.is_hidden for r in report.records) == 1

    def test_identical_legacy_entries_keep_one_visible(self):
        raw = {"studentName": "Ann", "score": 4, "maxScore": 5, "timestamp": 1000, "questionKey": "Q1"}
        records = [GradingRecord.from_dict(raw), GradingRecord.from_dict(dict(raw), ordinal=1)]

        report = mark_duplicates(records)

        assert records[0].id != records[1].id
        assert [r.is_hidden for r in report.records] == [False, True]

    def test_positions_follow_collection_order(self, make_record):
        records = [make_record("a", 1900), make_record("b", 1100), make_record("c", 1500)]
        assert find_duplicate_positions(records) == [1, 2]
