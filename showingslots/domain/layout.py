"""
Column layout for overlapping showings on the agent's calendar.

Overlapping showings are drawn side by side, Google Calendar style: each
showing gets a column, and every showing in a connected overlap cluster
shares the same column count.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

from .models import BlockPosition, LayoutAssignment, ShowingInterval
from .timezones import validate_timezone

DEFAULT_PIXELS_PER_HOUR = 80.0
MIN_DURATION_MINUTES = 1


@dataclass(frozen=True)
class _VisualBlock:
    showing: ShowingInterval
    top: float
    bottom: float


class _Clusters:
    """Union-find over block indices."""

    def __init__(self, size: int):
        self._parent = list(range(size))

    def find(self, item: int) -> int:
        while self._parent[item] != item:
            self._parent[item] = self._parent[self._parent[item]]
            item = self._parent[item]
        return item

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            self._parent[max(root_a, root_b)] = min(root_a, root_b)


class LayoutResolver:
    """
    Assigns columns to showings so overlapping blocks never collide.

    Overlap here is visual, not scheduling overlap: short showings are
    stretched to ``min_visual_minutes`` and blocks that merely touch count as
    overlapping (within ``touch_tolerance_minutes``), so adjacent showings do
    not appear merged on screen.
    """

    def __init__(
        self,
        min_visual_minutes: float = 45.0,
        touch_tolerance_minutes: float = 0.75,
        pixels_per_hour: float = DEFAULT_PIXELS_PER_HOUR,
    ):
        if pixels_per_hour <= 0:
            raise ValueError(f"pixels_per_hour must be positive, got {pixels_per_hour}")
        self.min_visual_minutes = max(float(min_visual_minutes), 0.0)
        self.touch_tolerance_minutes = max(float(touch_tolerance_minutes), 0.0)
        self.pixels_per_hour = float(pixels_per_hour)

    @classmethod
    def for_grid(cls, pixels_per_hour: float, min_height_px: float | None = None) -> "LayoutResolver":
        """
        Build a resolver matching a rendered grid.

        The week and day views use 80 px per hour with a 60 px minimum block,
        the compact views use a 40 px minimum. Touching is detected within 1 px.
        """
        if pixels_per_hour <= 0:
            raise ValueError(f"pixels_per_hour must be positive, got {pixels_per_hour}")
        if min_height_px is None:
            min_height_px = 60.0 if pixels_per_hour == DEFAULT_PIXELS_PER_HOUR else 40.0

        minutes_per_pixel = 60.0 / pixels_per_hour
        return cls(
            min_visual_minutes=min_height_px * minutes_per_pixel,
            touch_tolerance_minutes=minutes_per_pixel,
            pixels_per_hour=pixels_per_hour,
        )

    @property
    def min_height_px(self) -> float:
        return self.min_visual_minutes / 60.0 * self.pixels_per_hour

    def compute_layout(self, showings: Sequence[ShowingInterval]) -> List[LayoutAssignment]:
        """
        Assign a column and column count to every showing.

        Showings are processed chronologically (ties keep input order), each
        taking the lowest column not used by an earlier overlapping showing.
        Column counts are then unified per connected overlap cluster.

        Returns:
            Assignments in chronological order
        """
        blocks = self._visual_blocks(showings)
        columns: List[int] = [0] * len(blocks)
        clusters = _Clusters(len(blocks))

        for position, block in enumerate(blocks):
            taken = set()
            for earlier in range(position):
                if self._blocks_overlap(blocks[earlier], block):
                    taken.add(columns[earlier])
                    clusters.union(earlier, position)

            column = 0
            while column in taken:
                column += 1
            columns[position] = column

        widest: Dict[int, int] = {}
        for position in range(len(blocks)):
            root = clusters.find(position)
            widest[root] = max(widest.get(root, 0), columns[position] + 1)

        return [
            LayoutAssignment(
                showing_id=block.showing.showing_id,
                column=columns[position],
                total_columns=widest[clusters.find(position)],
            )
            for position, block in enumerate(blocks)
        ]

    def visually_overlap(self, a: ShowingInterval, b: ShowingInterval) -> bool:
        """Boundary-inclusive overlap of two showings as drawn."""
        block_a, block_b = self._visual_blocks([a, b])
        return self._blocks_overlap(block_a, block_b)

    def place(
        self,
        showing: ShowingInterval,
        assignment: LayoutAssignment,
        timezone: str,
        grid_start_hour: int = 0,
    ) -> BlockPosition:
        """
        Compute the block rectangle for a laid-out showing.

        Each block spans from its column to the right edge, so later columns
        are drawn on top of earlier ones.
        """
        local = showing.start.in_timezone(validate_timezone(timezone))
        minutes_from_grid = (local.hour - grid_start_hour) * 60 + local.minute
        duration = max(showing.duration_minutes, MIN_DURATION_MINUTES)

        top = minutes_from_grid / 60.0 * self.pixels_per_hour
        height = max(duration / 60.0 * self.pixels_per_hour, self.min_height_px)

        total = max(assignment.total_columns, 1)
        column_width = 100.0 / total
        return BlockPosition(
            top=top,
            height=height,
            left_percent=column_width * assignment.column,
            width_percent=column_width * (total - assignment.column),
        )

    def _visual_blocks(self, showings: Sequence[ShowingInterval]) -> List[_VisualBlock]:
        ordered = sorted(enumerate(showings), key=lambda item: (item[1].start, item[0]))
        blocks: List[_VisualBlock] = []
        for _, showing in ordered:
            top = showing.start.timestamp() / 60.0
            visual_minutes = max(
                float(showing.duration_minutes), self.min_visual_minutes, MIN_DURATION_MINUTES
            )
            blocks.append(_VisualBlock(showing=showing, top=top, bottom=top + visual_minutes))
        return blocks

    def _blocks_overlap(self, a: _VisualBlock, b: _VisualBlock) -> bool:
        tolerance = self.touch_tolerance_minutes
        return a.top < b.bottom + tolerance and b.top < a.bottom + tolerance


def compute_layout(
    showings: Sequence[ShowingInterval],
    resolver: LayoutResolver | None = None,
) -> List[LayoutAssignment]:
    """Functional entry point around ``LayoutResolver.compute_layout``."""
    return (resolver or LayoutResolver()).compute_layout(showings)
