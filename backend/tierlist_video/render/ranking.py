"""Ranking document model and reveal ordering.

A ranking document is a list of tiers (each holding items in display order),
the items nobody ranked yet, and the log of assignment events recorded by the
editor. The assignment log decides the order in which items are revealed in
the video.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Item:
    """A single ranked entity."""

    id: str
    name: str
    image: Optional[str] = None


@dataclass(frozen=True)
class Tier:
    """A named rank bucket holding items in display order."""

    id: str
    name: str
    color: str = ""
    items: tuple[Item, ...] = ()

    def slot_of(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index
        return None


@dataclass(frozen=True)
class AssignmentEvent:
    """An item being dropped into a tier at ``timestamp`` (ms)."""

    item_id: str
    item_name: str
    target_tier_id: str
    target_tier_name: str
    timestamp: float


@dataclass(frozen=True)
class RankingDocument:
    """Tiers, unranked items and the assignment log."""

    tiers: tuple[Tier, ...] = ()
    unranked_items: tuple[Item, ...] = ()
    assignments: tuple[AssignmentEvent, ...] = ()

    def tier_index(self, tier_id: str) -> Optional[int]:
        for index, tier in enumerate(self.tiers):
            if tier.id == tier_id:
                return index
        return None

    def tier_by_id(self, tier_id: str) -> Optional[Tier]:
        index = self.tier_index(tier_id)
        return self.tiers[index] if index is not None else None

    def locate(self, item_id: str) -> Optional[tuple[int, int]]:
        """Return ``(tier_index, slot)`` of a ranked item."""
        for tier_index, tier in enumerate(self.tiers):
            slot = tier.slot_of(item_id)
            if slot is not None:
                return tier_index, slot
        return None

    def ranked_items(self) -> list[Item]:
        return [item for tier in self.tiers for item in tier.items]

    def all_items(self) -> list[Item]:
        return self.ranked_items() + list(self.unranked_items)


class SegmentKind(str, Enum):
    """Kinds of narration segment."""

    INTRO = "intro"
    ITEM = "item"
    CONCLUSION = "conclusion"


@dataclass(frozen=True)
class NarrationSegment:
    """One unit of narration.

    ``duration`` is the nominal duration declared by the caller. ``is_tts``
    marks segments whose audio is driven by the narration text, which lets the
    renderer estimate their length from the text when no audio was supplied.
    """

    id: str
    kind: SegmentKind
    text: str = ""
    audio: Optional[bytes] = field(default=None, repr=False)
    duration: float = 0.0
    is_tts: bool = False
    item_id: Optional[str] = None
    tier_id: Optional[str] = None


@dataclass(frozen=True)
class RevealEntry:
    """An item scheduled for a reveal sub-phase.

    ``tier_index`` and ``final_slot`` are ``None`` for items that have no
    resolvable tier; those get a sub-phase but are never drawn moving.
    """

    item: Item
    tier_index: Optional[int] = None
    final_slot: Optional[int] = None

    @property
    def is_placed(self) -> bool:
        return self.tier_index is not None


def collapse_assignments(events: tuple[AssignmentEvent, ...] | list[AssignmentEvent]) -> list[AssignmentEvent]:
    """Sort events by timestamp and keep only the latest one per item.

    Sorting is stable on input order, so equal timestamps keep their sequence
    and the later duplicate wins.
    """
    ordered = sorted(enumerate(events), key=lambda pair: (pair[1].timestamp, pair[0]))
    latest: dict[str, int] = {}
    for position, (_, event) in enumerate(ordered):
        latest[event.item_id] = position
    return [event for position, (_, event) in enumerate(ordered) if latest[event.item_id] == position]


def reveal_order(document: RankingDocument) -> list[RevealEntry]:
    """Compute the order in which items are animated into their tiers.

    With an assignment log the de-duplicated log decides; entries whose target
    tier does not contain the item are dropped. Without one, items are revealed
    tier by tier, followed by the unranked items.
    """
    if document.assignments:
        entries: list[RevealEntry] = []
        for event in collapse_assignments(document.assignments):
            tier_index = document.tier_index(event.target_tier_id)
            if tier_index is None:
                logger.debug(f"[REVEAL] Dropping {event.item_id}: tier {event.target_tier_id} not found")
                continue
            tier = document.tiers[tier_index]
            slot = tier.slot_of(event.item_id)
            if slot is None:
                logger.debug(f"[REVEAL] Dropping {event.item_id}: not in tier {tier.name}")
                continue
            entries.append(RevealEntry(item=tier.items[slot], tier_index=tier_index, final_slot=slot))
        return entries

    entries = [
        RevealEntry(item=item, tier_index=tier_index, final_slot=slot)
        for tier_index, tier in enumerate(document.tiers)
        for slot, item in enumerate(tier.items)
    ]
    entries.extend(RevealEntry(item=item) for item in document.unranked_items)
    return entries
