"""
Rule-based contextual scoring: hard blockers, soft demotions, co-occurrence
boosts, brand-table boosts and keyword-group rules.

All rule strings are expected in normalized form. Blockers, demotions and
keyword groups match by substring containment against normalized text;
co-occurrence terms must be matched canonicals or whole words of the text.
"""
import logging
import re
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from ..models import RuleSet, ScoringWeights

logger = logging.getLogger(__name__)


class ScoreOutcome(NamedTuple):
    final_score: float
    explanation: Tuple[str, ...]
    contributions: Dict[str, float]
    blocked: bool = False


def _points(value: float) -> str:
    return f"{value:+g}"


def _has_word(term: str, text: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(term)}(?!\w)", text) is not None


class ContextualScorer:
    """
    Applies one or more RuleSets to normalized text.

    Mixed-language text is scored with both the Arabic and the English
    RuleSet; rule groups with the same name fire at most once.
    """

    def __init__(self,
                 rulesets: Sequence[RuleSet],
                 weights: Optional[ScoringWeights] = None,
                 fold: Callable[[str], str] = str.lower):
        """
        Args:
            rulesets: RuleSets consulted in order
            weights: Scoring weights (defaults from config)
            fold: Canonicalizer applied to brand names before table lookup
        """
        if not rulesets:
            raise ValueError("ContextualScorer needs at least one RuleSet")
        self.rulesets = tuple(rulesets)
        self.weights = weights or ScoringWeights()
        self.fold = fold

        self._brand_boosts: Dict[str, float] = {}
        for ruleset in self.rulesets:
            for brand, boost in ruleset.brand_boosts.items():
                self._brand_boosts.setdefault(fold(brand), boost)

    @staticmethod
    def _groups(tables: Iterable[Dict[str, Tuple[str, ...]]]):
        seen = set()
        for table in tables:
            for group, keywords in table.items():
                if group in seen:
                    continue
                seen.add(group)
                yield group, keywords

    def find_blocker(self, text: str) -> Optional[Tuple[str, str]]:
        """First (group, keyword) hard blocker present in text, or None."""
        for group, keywords in self._groups(ruleset.hard_blockers for ruleset in self.rulesets):
            for keyword in keywords:
                if keyword and keyword in text:
                    return group, keyword
        return None

    def score(self,
              base_score: float,
              matched_terms: Iterable[str],
              text: str,
              brand: Optional[str] = None) -> ScoreOutcome:
        """
        Score text in a fixed order: blockers, demotions, co-occurrence, brand.

        A hard blocker applies the blocker penalty and returns at once; none
        of the later stages run.

        Args:
            base_score: Score accumulated by earlier stages
            matched_terms: Canonical terms already matched in the text
            text: Normalized text
            brand: Record brand (raw or normalized)

        Returns:
            ScoreOutcome with the final score, one explanation line per rule
            that fired, and the named contributions
        """
        weights = self.weights

        blocker = self.find_blocker(text)
        if blocker is not None:
            group, keyword = blocker
            penalty = weights.blocker_penalty
            logger.debug(f"Hard blocker '{keyword}' ({group}) fired")
            return ScoreOutcome(
                final_score=base_score + penalty,
                explanation=(f"[BLOCKER] '{keyword}' ({group}) {_points(penalty)}",),
                contributions={'blocker': penalty},
                blocked=True,
            )

        explanation: List[str] = []

        demotions = 0.0
        seen_keywords = set()
        for group, keywords in self._groups(ruleset.soft_demotions for ruleset in self.rulesets):
            for keyword in keywords:
                if not keyword or keyword in seen_keywords or keyword not in text:
                    continue
                seen_keywords.add(keyword)
                demotions += weights.demotion_penalty
                explanation.append(f"[DEMOTION] '{keyword}' ({group}) {_points(weights.demotion_penalty)}")

        matched = set(matched_terms)
        cooccurrence = 0.0
        seen_rules = set()
        for ruleset in self.rulesets:
            for rule in ruleset.cooccurrence_boosts:
                key = rule.name or rule.terms
                if key in seen_rules:
                    continue
                if all(term in matched or _has_word(term, text) for term in rule.terms):
                    seen_rules.add(key)
                    cooccurrence += rule.boost
                    label = rule.name or ' + '.join(rule.terms)
                    explanation.append(
                        f"[COOCCURRENCE] {label}: {' + '.join(rule.terms)} {_points(rule.boost)}"
                    )

        brand_boost = 0.0
        if brand:
            boost = self._brand_boosts.get(self.fold(brand))
            if boost is not None:
                brand_boost = boost
                explanation.append(f"[BRAND] boost table '{brand}' {_points(boost)}")

        contributions = {
            'demotions': demotions,
            'cooccurrence': cooccurrence,
            'brand_boost': brand_boost,
        }
        final_score = base_score + demotions + cooccurrence + brand_boost
        return ScoreOutcome(final_score, tuple(explanation), contributions)

    def keyword_rules(self, text: str) -> ScoreOutcome:
        """
        Keyword-group rules: contextual boosts, penalty rules and PT-specific groups.

        The first keyword of a group found in text triggers that group once.
        A factor f is worth (f - 1) * factor_to_points points, so penalty
        factors below 1 come out negative.
        """
        weights = self.weights
        explanation: List[str] = []
        contributions = {'context_boosts': 0.0, 'penalties': 0.0, 'pt_boosts': 0.0}

        seen = set()
        for ruleset in self.rulesets:
            for name, rule in ruleset.contextual_boosts.items():
                if name in seen:
                    continue
                keyword = next((kw for kw in rule.keywords if kw and kw in text), None)
                if keyword is None:
                    continue
                seen.add(name)
                points = (rule.boost_factor - 1) * weights.factor_to_points
                contributions['context_boosts'] += points
                explanation.append(f"[CONTEXT] {name}: '{keyword}' x{rule.boost_factor:g} {_points(points)}")

        seen = set()
        for ruleset in self.rulesets:
            for name, rule in ruleset.penalty_rules.items():
                if name in seen:
                    continue
                keyword = next((kw for kw in rule.keywords if kw and kw in text), None)
                if keyword is None:
                    continue
                seen.add(name)
                points = (rule.penalty_factor - 1) * weights.factor_to_points
                contributions['penalties'] += points
                explanation.append(f"[PENALTY] {name}: '{keyword}' x{rule.penalty_factor:g} {_points(points)}")

        for group, keywords in self._groups(ruleset.pt_specific_boosts for ruleset in self.rulesets):
            keyword = next((kw for kw in keywords if kw and kw in text), None)
            if keyword is None:
                continue
            contributions['pt_boosts'] += weights.pt_specific_boost
            explanation.append(f"[PT-BOOST] {group}: '{keyword}' {_points(weights.pt_specific_boost)}")

        return ScoreOutcome(sum(contributions.values()), tuple(explanation), contributions)
