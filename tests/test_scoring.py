"""
Tests for src/scoring.py - ordering, drift score, token waste, memory picks.
"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from scoring import (
    sort_events,
    round_half_up,
    calculate_drift_score,
    calculate_token_waste,
    select_memory_candidates,
)
from models import (
    TranscriptMessage, ExtractedFact, EventEvidence,
    RepetitionCluster, SessionReset, Contradiction, PreferenceForgotten, UnknownEvent,
)


def evidence(*idxs):
    return EventEvidence(msg_idxs=list(idxs), snippets=[])


def reset(severity=4, confidence=0.9, idx=0):
    return SessionReset(severity=severity, confidence=confidence,
                        evidence=evidence(idx), summary="reset")


def repetition(*idxs, severity=2, confidence=1.0):
    return RepetitionCluster(severity=severity, confidence=confidence,
                             evidence=evidence(*idxs), summary="repeat",
                             cluster_size=len(idxs))


class TestSortEvents:
    def test_severity_then_confidence(self):
        low = repetition(0, 1, severity=2)
        high_weak = reset(severity=4, confidence=0.5)
        high_strong = reset(severity=4, confidence=0.9)
        assert sort_events([low, high_weak, high_strong]) == [high_strong, high_weak, low]

    def test_ties_keep_input_order(self):
        a = reset(idx=1)
        b = reset(idx=2)
        ordered = sort_events([a, b])
        assert ordered[0] is a
        assert ordered[1] is b


class TestRoundHalfUp:
    def test_rounding(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2
        assert round_half_up(0) == 0


class TestDriftScore:
    def test_empty(self):
        assert calculate_drift_score([]) == (0, 0)

    def test_raw_score_is_float(self):
        _, raw_score = calculate_drift_score([reset()])
        assert raw_score == 20
        assert isinstance(raw_score, float)

    def test_default_weights(self):
        events = [
            repetition(0, 1),
            reset(),
            Contradiction(severity=4, confidence=0.8, evidence=evidence(0, 1), summary="c"),
            PreferenceForgotten(severity=3, confidence=0.8, evidence=evidence(0, 6), summary="p"),
        ]
        assert calculate_drift_score(events) == (55, 55)

    def test_clamped_at_100_but_raw_kept(self):
        events = [reset(idx=i) for i in range(20)]
        assert calculate_drift_score(events) == (100, 400)

    def test_unknown_type_scores_zero(self):
        unknown = UnknownEvent(severity=3, confidence=0.5, evidence=evidence(0),
                               summary="?", type="tone_shift")
        assert calculate_drift_score([unknown]) == (0, 0)

    def test_custom_weights(self):
        unknown = UnknownEvent(severity=3, confidence=0.5, evidence=evidence(0),
                               summary="?", type="tone_shift")
        assert calculate_drift_score([unknown], {"tone_shift": 7.5}) == (8, 7.5)

    def test_negative_weight_clamped_at_zero(self):
        assert calculate_drift_score([reset()], {"session_reset": -5}) == (0, -5)

    def test_monotonic_in_events(self):
        events = []
        previous = 0
        for i in range(10):
            events.append(repetition(i, i + 1))
            score, _ = calculate_drift_score(events)
            assert score >= previous
            previous = score

    def test_skips_objects_without_type(self):
        assert calculate_drift_score([object(), reset()]) == (20, 20)


class TestTokenWaste:
    def messages(self):
        return [
            TranscriptMessage(idx=0, role="user", content="", tokens=4),
            TranscriptMessage(idx=1, role="assistant", content="", tokens=2),
            TranscriptMessage(idx=2, role="user", content="", tokens=4),
        ]

    def test_eighty_percent(self):
        assert calculate_token_waste(self.messages(), [repetition(0, 2)]) == 80.0

    def test_no_repetition(self):
        assert calculate_token_waste(self.messages(), [reset(idx=1)]) == 0.0

    def test_only_user_tokens_count(self):
        assert calculate_token_waste(self.messages(), [repetition(0, 1)]) == 40.0

    def test_zero_total_tokens(self):
        messages = [TranscriptMessage(idx=0, role="user", content="", tokens=0),
                    TranscriptMessage(idx=1, role="user", content="", tokens=0)]
        assert calculate_token_waste(messages, [repetition(0, 1)]) == 0.0

    def test_unknown_idx_ignored(self):
        assert calculate_token_waste(self.messages(), [repetition(0, 99)]) == 40.0

    def test_empty(self):
        assert calculate_token_waste([], []) == 0.0


class TestMemoryCandidates:
    def test_top_n_by_confidence(self):
        facts = [ExtractedFact(f"k{i}", "v", i, i / 20) for i in range(15)]
        picked = select_memory_candidates(facts, top_n=10)
        assert len(picked) == 10
        assert picked[0].fact_key == "k14"
        assert [f.confidence for f in picked] == sorted((f.confidence for f in picked), reverse=True)

    def test_equal_confidence_keeps_order(self):
        facts = [ExtractedFact("a", "1", 0, 0.5), ExtractedFact("b", "1", 1, 0.5)]
        assert [f.fact_key for f in select_memory_candidates(facts)] == ["a", "b"]

    def test_empty(self):
        assert select_memory_candidates([]) == []
