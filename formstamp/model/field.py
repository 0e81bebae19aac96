"""Field placement model definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
import uuid

from formstamp.config import (
    DEFAULT_FILL,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
)


class TextAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class FontWeight(str, Enum):
    NORMAL = "normal"
    BOLD = "bold"


class FontStyle(str, Enum):
    NORMAL = "normal"
    ITALIC = "italic"


@dataclass(frozen=True, slots=True)
class PageSize:
    width: float
    height: float


# Preview sizes are pixel dimensions of the editor surface, native sizes are
# PDF points. Both are plain width/height pairs.
PreviewSize = PageSize


def new_field_id() -> str:
    return f"field_{uuid.uuid4().hex}"


@dataclass(slots=True)
class FieldPlacement:
    column_name: str
    page_number: int
    x: float
    y: float
    width: float
    height: float
    is_code: bool = False
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0
    font_size: float = DEFAULT_FONT_SIZE
    fill: str = DEFAULT_FILL
    font_family: str = DEFAULT_FONT_FAMILY
    text_align: TextAlign = TextAlign.LEFT
    font_weight: FontWeight = FontWeight.NORMAL
    font_style: FontStyle = FontStyle.NORMAL
    id: str = field(default_factory=new_field_id)

    @property
    def is_bold(self) -> bool:
        return self.font_weight is FontWeight.BOLD

    @property
    def is_italic(self) -> bool:
        return self.font_style is FontStyle.ITALIC

    @property
    def display_width(self) -> float:
        return self.width * self.scale_x

    @property
    def display_height(self) -> float:
        return self.height * self.scale_y

    def local_point(self, x: float, y: float) -> tuple[float, float]:
        """Map a surface point into the field's own frame.

        The frame has its origin at the field's top-left corner and follows
        the field's clockwise rotation around that corner.
        """
        dx = x - self.x
        dy = y - self.y
        if not self.rotation:
            return dx, dy
        radians = math.radians(self.rotation)
        cos, sin = math.cos(radians), math.sin(radians)
        return dx * cos + dy * sin, dy * cos - dx * sin

    def contains(self, x: float, y: float) -> bool:
        local_x, local_y = self.local_point(x, y)
        return 0 <= local_x <= self.display_width and 0 <= local_y <= self.display_height

    def placeholder_text(self) -> str:
        if self.is_code:
            return f"[QR] {self.column_name}"
        return f"{{{{{self.column_name}}}}}"
