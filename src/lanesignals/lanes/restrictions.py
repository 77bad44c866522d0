"""
Turn restriction application
"""

from typing import List

from loguru import logger

from ..models import DirectedLink
from ..raw.models import RestrictionPolarity, RestrictionRelation
from .ordering import LinkVector


def apply_restrictions(
    link: DirectedLink,
    vectors: List[LinkVector],
    restrictions: List[RestrictionRelation]
) -> List[LinkVector]:
    """
    Filter downstream candidates by the restrictions starting on the link's way

    A deny restriction removes the candidates created from its `to` way, an
    only-allow restriction keeps nothing but them. A restriction whose `to`
    way has no candidate leaves the list unchanged.

    Returns:
        New candidate list in the original order
    """
    result = list(vectors)
    for relation in sorted(restrictions, key=lambda r: r.id):
        if relation.from_way_id != link.origin_way_id:
            continue
        matching = [v for v in result if v.link.origin_way_id == relation.to_way_id]
        if not matching:
            logger.debug(f"Restriction {relation.id} @ link {link.id}: no candidate on way {relation.to_way_id}")
            continue
        if relation.polarity is RestrictionPolarity.DENY:
            result = [v for v in result if v not in matching]
            logger.debug(
                f"'No'-Restriction @ link {link.id} and #Rel {relation.id}: "
                f"{', '.join(str(v.link.id) for v in matching)} removed"
            )
        elif relation.polarity is RestrictionPolarity.ONLY_ALLOW:
            result = matching
            logger.debug(
                f"'Only'-Restriction @ link {link.id} and #Rel {relation.id}: "
                f"kept {', '.join(str(v.link.id) for v in matching)}"
            )
    return result
