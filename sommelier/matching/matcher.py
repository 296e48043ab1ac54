"""Fuzzy resolution of free-text wine mentions onto inventory records."""
from typing import Iterable

from sommelier.database.models import WineRecord
from sommelier.database.utils import normalize_string
from sommelier.matching.models import MatchCandidate, MatchResult, MatchSignal, WineMention
from sommelier.matching.wine_terms import infer_wine_type
from sommelier.utils import logger

NAME_EXACT_WEIGHT = 0.50
NAME_CONTAINS_WEIGHT = 0.35
NAME_TOKENS_WEIGHT = 0.20
PRODUCER_EXACT_WEIGHT = 0.25
PRODUCER_CONTAINS_WEIGHT = 0.15
TYPE_DECLARED_WEIGHT = 0.15
TYPE_INFERRED_WEIGHT = 0.10
REGION_WEIGHT = 0.10
GRAPES_WEIGHT = 0.10

SUBSTITUTE_TYPE_WEIGHT = 0.4
SUBSTITUTE_REGION_WEIGHT = 0.3
SUBSTITUTE_GRAPES_WEIGHT = 0.3
SUBSTITUTE_MIN_SCORE = 0.3

MIN_TOKEN_LENGTH = 3


def _tokens(text: str) -> set[str]:
    return {token for token in text.split() if len(token) >= MIN_TOKEN_LENGTH}


def _contains_either(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


def _grape_set(grapes: Iterable[str]) -> set[str]:
    return {normalize_string(grape) for grape in grapes if normalize_string(grape)}


class EntityMatcher:
    """
    Scores wine mentions against inventory records.

    The matcher holds no state besides its thresholds and performs no I/O:
    callers pass the candidates already scoped to the querying user.
    """

    def __init__(
        self,
        acceptance_threshold: float = 0.6,
        consideration_threshold: float = 0.3,
        min_score: float = 0.2,
        max_alternatives: int | None = None,
    ):
        """
        Initialize the matcher.

        Args:
            acceptance_threshold: Minimum score for the best candidate
            consideration_threshold: Minimum score for an alternative
            min_score: Candidates below this score are discarded before ranking
            max_alternatives: Optional cap on the number of alternatives
        """
        if not 0.0 <= min_score <= consideration_threshold <= acceptance_threshold <= 1.0:
            raise ValueError("Thresholds must satisfy 0 <= min_score <= consideration <= acceptance <= 1")
        self.acceptance_threshold = acceptance_threshold
        self.consideration_threshold = consideration_threshold
        self.min_score = min_score
        self.max_alternatives = max_alternatives

    def score(self, mention: WineMention, wine: WineRecord) -> MatchCandidate:
        """
        Score a single record against a mention.

        Args:
            mention: Wine mention
            wine: Candidate record

        Returns:
            MatchCandidate with the capped score and the contributing signals in rule order
        """
        total = 0.0
        signals = []

        mention_name = normalize_string(mention.name)
        wine_name = normalize_string(wine.name)
        if mention_name and wine_name:
            if mention_name == wine_name:
                total += NAME_EXACT_WEIGHT
                signals.append(MatchSignal.NAME_EXACT)
            elif _contains_either(mention_name, wine_name):
                total += NAME_CONTAINS_WEIGHT
                signals.append(MatchSignal.NAME_CONTAINS)
            else:
                mention_tokens = _tokens(mention_name)
                common = mention_tokens & _tokens(wine_name)
                if common:
                    total += NAME_TOKENS_WEIGHT * len(common) / len(mention_tokens)
                    signals.append(MatchSignal.NAME_TOKENS)

        mention_producer = normalize_string(mention.producer)
        wine_producer = normalize_string(wine.producer)
        if mention_producer and wine_producer:
            if mention_producer == wine_producer:
                total += PRODUCER_EXACT_WEIGHT
                signals.append(MatchSignal.PRODUCER_EXACT)
            elif _contains_either(mention_producer, wine_producer):
                total += PRODUCER_CONTAINS_WEIGHT
                signals.append(MatchSignal.PRODUCER_CONTAINS)

        if mention.wine_type is not None:
            if mention.wine_type == wine.wine_type:
                total += TYPE_DECLARED_WEIGHT
                signals.append(MatchSignal.TYPE_DECLARED)
        else:
            # Keywords shared with the candidate name were already scored by the name rule
            inferred = infer_wine_type(mention.name, " ".join(mention.grapes), ignore=wine.name)
            if inferred is not None and inferred == wine.wine_type:
                total += TYPE_INFERRED_WEIGHT
                signals.append(MatchSignal.TYPE_INFERRED)

        if _contains_either(normalize_string(mention.region), normalize_string(wine.region)):
            total += REGION_WEIGHT
            signals.append(MatchSignal.REGION)

        if _grape_set(mention.grapes) & _grape_set(wine.grapes):
            total += GRAPES_WEIGHT
            signals.append(MatchSignal.GRAPES)

        return MatchCandidate(wine=wine, score=round(min(total, 1.0), 4), matched_signals=signals)

    def resolve(self, mention: WineMention, candidates: Iterable[WineRecord]) -> MatchResult:
        """
        Resolve a mention against a candidate set.

        Args:
            mention: Wine mention
            candidates: Records the mention may refer to

        Returns:
            MatchResult with the accepted best candidate (if any) and ranked alternatives
        """
        if not normalize_string(mention.name):
            logger.debug("Mention without a name, nothing to resolve")
            return MatchResult(mention=mention)

        scored = [self.score(mention, wine) for wine in candidates]
        ranked = sorted(
            (candidate for candidate in scored if candidate.score >= self.min_score),
            key=lambda c: (-c.score, normalize_string(c.wine.name), c.wine.id),
        )

        best = None
        if ranked and ranked[0].score >= self.acceptance_threshold:
            best = ranked[0]

        alternatives = [
            candidate for candidate in ranked
            if candidate is not best and candidate.score >= self.consideration_threshold
        ]
        if self.max_alternatives is not None:
            alternatives = alternatives[:self.max_alternatives]

        logger.debug(
            f"Resolved '{mention.name}' over {len(scored)} candidate(s): "
            f"best={best.wine.id if best else None} ({best.score if best else 0}), "
            f"{len(alternatives)} alternative(s)"
        )
        return MatchResult(mention=mention, best=best, alternatives=alternatives)

    def find_substitutes(
        self, mention: WineMention, candidates: Iterable[WineRecord], limit: int = 3
    ) -> list[MatchCandidate]:
        """
        Rank records by stylistic similarity to a mention that could not be resolved.

        Args:
            mention: Wine mention
            candidates: Records to choose substitutes from
            limit: Maximum number of substitutes

        Returns:
            Up to `limit` candidates scoring above the substitute threshold, best first
        """
        wine_type = mention.wine_type
        type_signal = MatchSignal.TYPE_DECLARED
        if wine_type is None:
            wine_type = infer_wine_type(mention.name, " ".join(mention.grapes))
            type_signal = MatchSignal.TYPE_INFERRED
        mention_region = normalize_string(mention.region)
        mention_grapes = _grape_set(mention.grapes)

        substitutes = []
        for wine in candidates:
            total = 0.0
            signals = []
            if wine_type is not None and wine.wine_type == wine_type:
                total += SUBSTITUTE_TYPE_WEIGHT
                signals.append(type_signal)
            if _contains_either(mention_region, normalize_string(wine.region)):
                total += SUBSTITUTE_REGION_WEIGHT
                signals.append(MatchSignal.REGION)
            if mention_grapes & _grape_set(wine.grapes):
                total += SUBSTITUTE_GRAPES_WEIGHT
                signals.append(MatchSignal.GRAPES)
            total = round(min(total, 1.0), 4)
            if total > SUBSTITUTE_MIN_SCORE:
                substitutes.append(MatchCandidate(wine=wine, score=total, matched_signals=signals))

        substitutes.sort(key=lambda c: (-c.score, normalize_string(c.wine.name), c.wine.id))
        return substitutes[:limit]
