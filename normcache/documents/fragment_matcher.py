"""
Fragment matchers decide whether a record satisfies a fragment's type
condition. Both implementations follow the same call shape:

    match(typename, type_condition) -> True | False | "heuristic"

``"heuristic"`` means the match could not be decided. The reader then reads
the fragment's fields leniently: missing fields neither fail the read nor mark
the result incomplete.
"""

import logging
from typing import Dict, Iterable, Optional, Union

HEURISTIC = "heuristic"


class HeuristicFragmentMatcher:
    """
    Matches on exact typename equality, without schema knowledge.

    Interfaces and unions can't be resolved without the schema, so a differing
    typename is reported as a heuristic match instead of a miss. Each
    typename and type condition pair is noted once at debug level.
    """

    def __init__(self):
        self._warned = set()

    def match(
        self, typename: Optional[str], type_condition: str
    ) -> Union[bool, str]:
        if typename == type_condition:
            return True

        if typename is None:
            return HEURISTIC

        key = (typename, type_condition)
        if key not in self._warned:
            self._warned.add(key)
            logging.debug(
                f"Heuristic fragment matching used for {typename} on {type_condition}; "
                "configure an IntrospectionFragmentMatcher for unions and interfaces"
            )
        return HEURISTIC


class IntrospectionFragmentMatcher:
    """
    Exact matcher driven by a map of abstract types to their concrete types.

    Args:
        possible_types: e.g. ``{"Character": ["Human", "Droid"]}``
    """

    def __init__(self, possible_types: Dict[str, Iterable[str]]):
        self.possible_types = {
            supertype: frozenset(subtypes)
            for supertype, subtypes in possible_types.items()
        }

    def match(self, typename: Optional[str], type_condition: str) -> bool:
        if typename is None:
            return False
        if typename == type_condition:
            return True
        return typename in self.possible_types.get(type_condition, frozenset())
