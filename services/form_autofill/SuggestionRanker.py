from shared.models.suggestion import SuggestionCandidate

REFINE_KEEP_PREVIOUS = 3


class SuggestionRanker:
    """Filtering, ordering and merging of suggestion candidates. Stateless."""

    def rank(self, candidates: list[SuggestionCandidate]) -> list[SuggestionCandidate]:
        """
        Drop blank values, order by confidence (stable) and drop duplicates.

        Duplicates are values equal after trimming and case folding; the
        higher-ranked occurrence is kept.
        """
        valid = [c for c in candidates if c.value and c.value.strip()]
        ordered = sorted(valid, key=lambda c: c.confidence, reverse=True)

        ranked = []
        seen: set[str] = set()
        for candidate in ordered:
            value_key = candidate.value.strip().casefold()
            if value_key in seen:
                continue
            seen.add(value_key)
            ranked.append(candidate)
        return ranked

    def merge_refined(self, new: list[SuggestionCandidate], old: list[SuggestionCandidate], keep: int = REFINE_KEEP_PREVIOUS) -> list[SuggestionCandidate]:
        """New candidates first, then at most `keep` of the previous ones, in their stored order."""
        return list(new) + list(old[:max(keep, 0)])
