"""
Memory Drift - Repetition Clusterer
=====================================
Finds groups of user messages that make the same request in different words.

Pipeline:
  1. Normalize + tokenize every non-empty user message
  2. Bucket by cheap signatures so only same-bucket pairs are compared
  3. Verify pairs inside each bucket with Jaccard similarity
  4. Join verified pairs with a disjoint-set; each component of size >= 2
     becomes one repetition_cluster event

Comparison cost is O(k^2) per bucket of size k instead of O(n^2) overall.
"""

from normalize import (
    normalize_text, tokenize, make_signature, jaccard_similarity,
    DEFAULT_SIGNATURE_LENGTH, DEFAULT_SIMILARITY_THRESHOLD,
)
from models import RepetitionCluster, EventEvidence, Role
from detectors.base import BaseDetector, DetectorRegistry


@DetectorRegistry.register_detector
class RepetitionClusterDetector(BaseDetector):
    timing_key = "repetition"
    priority = 10

    def detect(self, messages: list, **kwargs) -> list[RepetitionCluster]:
        return detect_repetition_clusters(
            messages,
            threshold=self.config.similarity_threshold,
            signature_length=self.config.signature_length,
            snippet_limit=self.config.snippet_limit,
        )


# ---------------------------------------------------------------------------
# Disjoint set
# ---------------------------------------------------------------------------

class DisjointSet:
    """Union-find over integer positions with path compression."""

    def __init__(self, size: int):
        self.parent = list(range(size))

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return
        # Smaller position stays root so grouping is order-independent
        if root_b < root_a:
            root_a, root_b = root_b, root_a
        self.parent[root_b] = root_a

    def groups(self) -> dict[int, list[int]]:
        components: dict[int, list[int]] = {}
        for x in range(len(self.parent)):
            components.setdefault(self.find(x), []).append(x)
        return components


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------

def cluster_severity(cluster_size: int) -> int:
    """Monotonic size-to-severity mapping: 2-3 -> 2, 4-5 -> 3, 6-8 -> 4, 9+ -> 5."""
    if cluster_size <= 3:
        return 2
    if cluster_size <= 5:
        return 3
    if cluster_size <= 8:
        return 4
    return 5


def bucket_keys(tokens: list[str], n: int = DEFAULT_SIGNATURE_LENGTH) -> list[tuple]:
    """
    Candidate bucket keys for one message.

    The prefix key is the plain signature. The bag key is the signature of
    the sorted distinct tokens, so reordered restatements ("reply in bangla
    please" / "please reply in bangla") still meet in one bucket.
    """
    return [
        ("prefix", make_signature(tokens, n)),
        ("bag", make_signature(sorted(set(tokens)), n)),
    ]


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def detect_repetition_clusters(
    messages: list,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    signature_length: int = DEFAULT_SIGNATURE_LENGTH,
    snippet_limit: int = 5,
) -> list[RepetitionCluster]:
    """
    Cluster repeated user requests.

    Empty user messages are left out entirely so blank turns cannot flood a
    shared empty-signature bucket. Confidence is the lowest similarity
    among all pairs compared inside the cluster, including pairs that
    only joined through a third message.
    """
    candidates = []
    for msg in messages:
        if msg.role != Role.USER.value:
            continue
        tokens = tokenize(normalize_text(msg.content))
        if tokens:
            candidates.append((msg, tokens))

    if len(candidates) < 2:
        return []

    buckets: dict[tuple, list[int]] = {}
    for position, (_, tokens) in enumerate(candidates):
        for key in bucket_keys(tokens, signature_length):
            buckets.setdefault(key, []).append(position)

    token_sets = [set(tokens) for _, tokens in candidates]
    links = DisjointSet(len(candidates))
    observed: dict[tuple, float] = {}

    for members in buckets.values():
        if len(members) < 2:
            continue
        for i, a in enumerate(members):
            for b in members[i + 1:]:
                if (a, b) in observed:
                    continue
                similarity = jaccard_similarity(token_sets[a], token_sets[b])
                observed[(a, b)] = similarity
                if similarity >= threshold:
                    links.union(a, b)

    events = []
    for _, component in sorted(links.groups().items()):
        if len(component) < 2:
            continue
        members = set(component)
        similarities = [s for (a, b), s in observed.items() if a in members and b in members]
        ordered = sorted((candidates[p][0] for p in component), key=lambda m: m.idx)
        msg_idxs = [m.idx for m in ordered]
        size = len(msg_idxs)
        confidence = max(0.0, min(1.0, min(similarities)))

        events.append(RepetitionCluster(
            severity=cluster_severity(size),
            confidence=confidence,
            evidence=EventEvidence(
                msg_idxs=msg_idxs,
                snippets=[m.content for m in ordered[:snippet_limit]],
            ),
            summary=f"User repeated the same request {size} times "
                    f"(messages {', '.join(str(i) for i in msg_idxs)})",
            cluster_size=size,
        ))
    return events
