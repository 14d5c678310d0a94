"""Category styling shared by the Qt overlay and any HTML/CSS consumer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple

from .models import Category

__all__ = [
    "CATEGORY_CLASS_NAMES",
    "CategoryStyle",
    "ColorTuple",
    "default_styles",
    "normalize_color",
]

ColorTuple = Tuple[int, int, int]

CATEGORY_CLASS_NAMES: Mapping[Category, str] = {
    Category.NOUN: "pos-noun",
    Category.VERB: "pos-verb",
    Category.ADJECTIVE: "pos-adjective",
    Category.ADVERB: "pos-adverb",
    Category.CONJUNCTION: "pos-conjunction",
    Category.URL: "url",
}

_DARK_PALETTE: Dict[Category, Dict[str, Any]] = {
    Category.NOUN: {"foreground": "#8ab4f8", "background": (28, 44, 70)},
    Category.VERB: {"foreground": "#81c995", "background": (24, 56, 36)},
    Category.ADJECTIVE: {"foreground": "#fdd663", "background": (66, 56, 18)},
    Category.ADVERB: {"foreground": "#f28b82", "background": (70, 30, 30)},
    Category.CONJUNCTION: {"foreground": "#c58af9", "background": (52, 34, 72)},
    Category.URL: {"foreground": "#6cc7ff", "underline": True},
}

_LIGHT_PALETTE: Dict[Category, Dict[str, Any]] = {
    Category.NOUN: {"foreground": "#1a56c4", "background": (225, 236, 255)},
    Category.VERB: {"foreground": "#137333", "background": (222, 245, 228)},
    Category.ADJECTIVE: {"foreground": "#8a5a00", "background": (255, 244, 204)},
    Category.ADVERB: {"foreground": "#b3261e", "background": (252, 228, 226)},
    Category.CONJUNCTION: {"foreground": "#7b1fa2", "background": (243, 229, 250)},
    Category.URL: {"foreground": "#006aa6", "underline": True},
}


def _clamp_channel(value: Any) -> int:
    return max(0, min(255, int(value)))


def normalize_color(value: Any) -> ColorTuple:
    """Convert ``value`` into an RGB tuple, accepting hex strings or sequences."""

    if isinstance(value, str):
        text = value.strip().lstrip("#")
        if len(text) == 3:
            text = "".join(ch * 2 for ch in text)
        if len(text) != 6:
            raise ValueError(f"Unsupported color format: {value!r}")
        return tuple(int(text[i : i + 2], 16) for i in range(0, 6, 2))  # type: ignore[return-value]
    if isinstance(value, Sequence):
        items = list(value)
        if len(items) != 3:
            raise ValueError(f"RGB sequences must contain 3 values, received {value!r}")
        return tuple(_clamp_channel(component) for component in items)  # type: ignore[return-value]
    raise TypeError(f"Cannot convert {type(value)!r} to an RGB color")


@dataclass(slots=True, frozen=True)
class CategoryStyle:
    """Visual treatment for one category."""

    category: Category
    class_name: str
    foreground: ColorTuple | None = None
    background: ColorTuple | None = None
    underline: bool = False

    @classmethod
    def build(cls, category: Category, spec: Mapping[str, Any]) -> CategoryStyle:
        foreground = spec.get("foreground")
        background = spec.get("background")
        return cls(
            category=category,
            class_name=CATEGORY_CLASS_NAMES[category],
            foreground=normalize_color(foreground) if foreground is not None else None,
            background=normalize_color(background) if background is not None else None,
            underline=bool(spec.get("underline", False)),
        )

    def css(self) -> str:
        rules = []
        if self.foreground is not None:
            rules.append("color: rgb({}, {}, {});".format(*self.foreground))
        if self.background is not None:
            rules.append("background-color: rgb({}, {}, {});".format(*self.background))
        if self.underline:
            rules.append("text-decoration: underline;")
        return f".{self.class_name} {{ {' '.join(rules)} }}"


def default_styles(appearance: str = "dark") -> Dict[Category, CategoryStyle]:
    palette = _LIGHT_PALETTE if (appearance or "").strip().lower() == "light" else _DARK_PALETTE
    return {category: CategoryStyle.build(category, spec) for category, spec in palette.items()}
