# Tests for Matcher
# =================

import pytest

from wordroot.dictionary import (
    DictionarySnapshot,
    Matcher,
    MatchKind,
    RatioSimilarity,
    TrigramSimilarity,
)


@pytest.fixture
def snapshot(make_root):
    """Dictionary with 订单, 订单号, 金额 (+synonyms), ID and 客户名称."""
    return DictionarySnapshot([
        make_root(1, "订单", "order"),
        make_root(2, "金额", "amt", synonyms=["钱", "费用", "价格"], data_type="decimal"),
        make_root(3, "订单号", "order_no"),
        make_root(4, "ID", "id"),
        make_root(5, "客户名称", "cust_name"),
    ])


class TestSegmentation:
    """Greedy longest-match segmentation."""

    def test_exact_terms(self, snapshot):
        """Test that a phrase of known terms splits into those terms."""
        segments = Matcher(snapshot).match("订单金额")
        assert [s.span for s in segments] == ["订单", "金额"]
        assert [(s.start, s.end) for s in segments] == [(0, 2), (2, 4)]

    def test_longest_match_wins(self, snapshot):
        """Test that 订单号 is preferred over 订单 + 号."""
        segments = Matcher(snapshot).match("订单号金额")
        assert [s.span for s in segments] == ["订单号", "金额"]

    def test_unknown_characters_coalesce(self, snapshot):
        """Test that consecutive unknown characters form one span."""
        segments = Matcher(snapshot).match("订单税费")
        assert [s.span for s in segments] == ["订单", "税费"]

    def test_separators_are_dropped(self, snapshot):
        """Test that whitespace and punctuation split segments and are discarded."""
        for phrase in ("订单 金额", "订单,金额", "订单_金额", "  订单金额  "):
            segments = Matcher(snapshot).match(phrase)
            assert [s.span for s in segments] == ["订单", "金额"], phrase

    def test_separator_splits_unknown_run(self, snapshot):
        """Test that a separator ends an unknown span."""
        segments = Matcher(snapshot).match("税 费")
        assert [s.span for s in segments] == ["税", "费"]

    def test_full_width_and_case_normalized(self, snapshot):
        """Test that full-width Latin and uppercase match the ID root."""
        segments = Matcher(snapshot).match("订单ＩＤ")
        assert [s.span for s in segments] == ["订单", "id"]
        assert segments[1].top.root.en_abbr == "id"

    def test_empty_phrase(self, snapshot):
        """Test that an empty phrase yields no segments."""
        assert Matcher(snapshot).match("") == []
        assert Matcher(snapshot).match("   ") == []

    def test_empty_dictionary(self):
        """Test that everything is one unknown span with no roots."""
        segments = Matcher(DictionarySnapshot([])).match("订单金额")
        assert [s.span for s in segments] == ["订单金额"]
        assert not segments[0].matched


class TestRanking:
    """Candidate ranking per segment."""

    def test_exact_match_scores_one(self, snapshot):
        """Test that a cn_name match is EXACT with score 1.0."""
        segment = Matcher(snapshot).match("金额")[0]
        assert segment.top.root.id == 2
        assert segment.top.kind == MatchKind.EXACT
        assert segment.top.score == 1.0
        assert segment.matched

    def test_synonym_match(self, snapshot):
        """Test that a synonym match is SYNONYM with score 0.9."""
        segment = Matcher(snapshot).match("费用")[0]
        assert segment.top.root.en_abbr == "amt"
        assert segment.top.kind == MatchKind.SYNONYM
        assert segment.top.score == 0.9

    def test_fuzzy_match_above_threshold(self, snapshot):
        """Test that an unknown span can still match by trigram similarity."""
        segment = Matcher(snapshot).match("客户名")[0]
        assert segment.span == "客户名"
        assert segment.matched
        assert segment.top.root.en_abbr == "cust_name"
        assert segment.top.kind == MatchKind.FUZZY
        assert segment.top.score == pytest.approx(0.5)

    def test_fuzzy_below_threshold_is_unmatched(self, snapshot):
        """Test that a higher threshold drops weak fuzzy candidates."""
        segment = Matcher(snapshot, threshold=0.6).match("客户名")[0]
        assert not segment.matched
        assert segment.candidates == ()

    def test_no_match_is_not_an_error(self, snapshot):
        """Test that an unknown span is returned unmatched."""
        segment = Matcher(snapshot).match("订单税费")[1]
        assert segment.span == "税费"
        assert not segment.matched
        assert segment.top is None

    def test_root_appears_once_with_best_score(self, snapshot):
        """Test that an exact root is not repeated as a fuzzy candidate."""
        segment = Matcher(snapshot).match("订单")[0]
        ids = [c.root.id for c in segment.candidates]
        assert len(ids) == len(set(ids))
        assert segment.top.root.id == 1
        assert segment.top.kind == MatchKind.EXACT
        # 订单号 shares two of five trigrams
        assert [c.root.id for c in segment.candidates] == [1, 3]

    def test_ratio_similarity_scans_all_roots(self, snapshot):
        """Test the alternative scorer."""
        segment = Matcher(snapshot, similarity=RatioSimilarity()).match("客户名")[0]
        assert segment.top.root.en_abbr == "cust_name"
        assert segment.top.score == pytest.approx(6 / 7, abs=0.001)

    @pytest.mark.parametrize("similarity", [TrigramSimilarity(), RatioSimilarity()])
    def test_zero_threshold_needs_some_similarity(self, snapshot, similarity):
        """Test that a zero threshold does not admit roots with nothing in common."""
        segment = Matcher(snapshot, similarity=similarity, threshold=0.0).match("税")[0]
        assert segment.span == "税"
        assert segment.candidates == ()

    def test_invalid_configuration(self, snapshot):
        """Test that out-of-range settings are rejected."""
        with pytest.raises(ValueError):
            Matcher(snapshot, threshold=1.5)
        with pytest.raises(ValueError):
            Matcher(snapshot, max_candidates=0)


class TestDeterminism:
    """Tie-breaking and truncation."""

    @pytest.fixture
    def tied_snapshot(self, make_root):
        """Two roots sharing the synonym 价格, inserted in reverse id order."""
        return DictionarySnapshot([
            make_root(11, "价位", "price_lvl", synonyms=["价格"]),
            make_root(10, "价钱", "price", synonyms=["价格"]),
        ])

    def test_tie_goes_to_lowest_id(self, tied_snapshot):
        """Test that equal scores are ordered by root id, every run."""
        for _ in range(10):
            segment = Matcher(tied_snapshot).match("价格")[0]
            assert [c.root.id for c in segment.candidates] == [10, 11]
            assert segment.top.root.en_abbr == "price"

    def test_tie_is_ambiguous(self, tied_snapshot):
        """Test that equal top scores flag the segment as ambiguous."""
        segment = Matcher(tied_snapshot).match("价格")[0]
        assert segment.ambiguous

    def test_clear_winner_is_not_ambiguous(self, snapshot):
        """Test that a large score gap is not ambiguous."""
        segment = Matcher(snapshot).match("订单")[0]
        assert not segment.ambiguous

    def test_candidates_truncated(self, make_root):
        """Test that only max_candidates lowest-id roots are kept on a tie."""
        roots = [make_root(i, f"词{i}", f"w{i}", synonyms=["数量"]) for i in range(1, 8)]
        segment = Matcher(DictionarySnapshot(roots), max_candidates=3).match("数量")[0]
        assert [c.root.id for c in segment.candidates] == [1, 2, 3]

    def test_repeated_match_identical(self, snapshot):
        """Test that identical input and snapshot give identical output."""
        matcher = Matcher(snapshot)
        assert matcher.match("订单号客户名税费") == matcher.match("订单号客户名税费")


class TestSnapshot:
    """DictionarySnapshot lookups."""

    def test_lookup_exact_normalizes(self, snapshot):
        """Test that lookup ignores case and whitespace."""
        assert snapshot.lookup_exact(" i d ").en_abbr == "id"
        assert snapshot.lookup_exact("不存在") is None

    def test_lookup_synonym(self, snapshot):
        """Test synonym lookup returns a set of roots."""
        roots = snapshot.lookup_synonym("钱")
        assert {r.en_abbr for r in roots} == {"amt"}
        assert snapshot.lookup_synonym("金额") == frozenset()

    def test_all_roots_sorted(self, snapshot):
        """Test that roots are ordered by id."""
        assert [r.id for r in snapshot.all_roots()] == [1, 2, 3, 4, 5]
        assert len(snapshot) == 5
