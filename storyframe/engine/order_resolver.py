"""
Chronological ordering of structural units.

Stored structure maps do not reliably preserve the order their units happen in,
so the canonical sequence for a template comes from a registry keyed by a
stable template id. When the caller only has a display name, the registry
falls back to fuzzy matching on the normalized name; when nothing matches the
structure map's own key order is used and the result is marked low-confidence.
"""
from __future__ import annotations

import dataclasses
import re
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from storyframe.utils.logging_config import get_logger

logger = get_logger("storyframe.order")


DEFAULT_TEMPLATE_ORDERS: Dict[str, List[str]] = {
    "three-act": [
        "setup", "confrontation_first_half", "midpoint", "confrontation_second_half",
        "crisis", "climax", "resolution",
    ],
    "save-the-cat": [
        "opening_image", "setup", "theme_stated", "catalyst", "debate", "break_into_two",
        "b_story", "fun_and_games", "midpoint", "bad_guys_close_in", "all_is_lost",
        "dark_night_of_soul", "break_into_three", "finale", "final_image",
    ],
    "hero-journey": [
        "ordinary_world", "call_to_adventure", "refusal_of_call", "meeting_mentor",
        "crossing_threshold", "tests_allies_enemies", "approach_inmost_cave", "ordeal",
        "reward", "road_back", "resurrection", "return_with_elixir",
    ],
    "hero-s-journey": [
        "ordinary_world", "call_to_adventure", "refusal_of_call", "meeting_mentor",
        "crossing_threshold", "tests_allies_enemies", "approach_inmost_cave", "ordeal",
        "reward", "road_back", "resurrection", "return_with_elixir",
    ],
    "booker-quest": [
        "call_to_quest", "preparation", "journey_begins", "trials_and_tests",
        "approach_goal", "final_ordeal", "goal_achieved",
    ],
    "booker-overcoming-monster": [
        "anticipation_stage", "dream_stage", "frustration_stage", "nightmare_stage",
        "final_triumph",
    ],
    "booker-rags-to-riches": [
        "humble_origins", "call_to_adventure", "getting_out", "initial_success",
        "first_crisis", "final_crisis", "final_triumph",
    ],
    "booker-voyage-return": [
        "ordinary_world", "call_to_adventure", "strange_world", "initial_fascination",
        "growing_threat", "escape_and_return",
    ],
    "booker-comedy": [
        "initial_situation", "complication", "development", "crisis", "resolution",
    ],
    "booker-tragedy": [
        "anticipation_stage", "dream_stage", "frustration_stage", "nightmare_stage",
        "destruction",
    ],
    "booker-rebirth": [
        "initial_state", "call_to_life", "resistance", "crisis", "final_awakening",
    ],
}


@dataclasses.dataclass(frozen=True)
class OrderResolution:
    """Result of resolving a template's unit order.

    ``confident`` is False when no registered template matched and the
    structure map's native key order was returned.
    """
    ordered_keys: List[str]
    confident: bool
    template_id: Optional[str] = None


# A match strategy picks one id out of the registered ids that matched, in
# registration order.
MatchStrategy = Callable[[Sequence[str]], str]


def first_match(candidates: Sequence[str]) -> str:
    return candidates[0]


def longest_match(candidates: Sequence[str]) -> str:
    # max() keeps the earliest candidate among equal lengths
    return max(candidates, key=len)


MATCH_STRATEGIES: Dict[str, MatchStrategy] = {
    "first_match": first_match,
    "longest_match": longest_match,
}


def normalize_template_name(name: Optional[str]) -> str:
    """Lowercase, turn anything outside ``[a-z-]`` into ``-``, collapse and trim dashes."""
    if not name:
        return "unknown"
    normalized = re.sub(r"[^a-z-]", "-", name.lower())
    normalized = re.sub(r"-+", "-", normalized).strip("-")
    return normalized or "unknown"


class TemplateOrderRegistry:
    """Maps stable template ids to canonical chronological unit keys."""

    def __init__(
        self,
        orders: Optional[Mapping[str, Iterable[str]]] = None,
        strategy: MatchStrategy | str = "first_match",
    ):
        self._orders: Dict[str, List[str]] = {}
        source = DEFAULT_TEMPLATE_ORDERS if orders is None else orders
        for template_id, keys in source.items():
            self.register(template_id, keys)
        self.strategy = MATCH_STRATEGIES[strategy] if isinstance(strategy, str) else strategy

    def register(self, template_id: str, keys: Iterable[str]) -> None:
        self._orders[template_id] = list(keys)

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._orders

    def template_ids(self) -> List[str]:
        return list(self._orders)

    def order_for(self, template_id: str) -> Optional[List[str]]:
        order = self._orders.get(template_id)
        return list(order) if order is not None else None

    def match(self, template_name: Optional[str]) -> Optional[str]:
        """Fuzzy-match a display name against registered ids."""
        normalized = normalize_template_name(template_name)
        candidates = [
            template_id for template_id in self._orders
            if template_id in normalized or normalized in template_id
        ]
        if not candidates:
            return None
        return self.strategy(candidates)


class OrderResolver:
    """Resolves the canonical chronological sequence of unit keys for a template."""

    def __init__(self, registry: Optional[TemplateOrderRegistry] = None):
        self.registry = registry or TemplateOrderRegistry()

    def resolve(
        self,
        template_name: Optional[str],
        structure_map: Mapping[str, object],
        template_id: Optional[str] = None,
    ) -> OrderResolution:
        matched_id, how = self._select_template(template_name, template_id)

        if matched_id is not None:
            canonical = self.registry.order_for(matched_id) or []
            existing = [key for key in canonical if key in structure_map]
            if existing:
                logger.info(
                    "Using chronological order for template %r (%s): %s",
                    matched_id, how, " -> ".join(existing),
                    extra={"template": matched_id},
                )
                return OrderResolution(ordered_keys=existing, confident=True, template_id=matched_id)

        fallback = list(structure_map.keys())
        logger.warning(
            "No canonical order for template %r; falling back to stored key order: %s",
            template_id or template_name, " -> ".join(fallback),
            extra={"template": template_id or normalize_template_name(template_name)},
        )
        return OrderResolution(ordered_keys=fallback, confident=False, template_id=None)

    def _select_template(
        self, template_name: Optional[str], template_id: Optional[str]
    ) -> Tuple[Optional[str], str]:
        if template_id and template_id in self.registry:
            return template_id, "template id"
        return self.registry.match(template_name), "name match"
