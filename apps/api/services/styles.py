"""Coloring styles and the prompts sent to the image provider."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ColoringStyle(str, Enum):
    STORYBOOK = "storybook"
    CRAYONS = "crayons"
    BOLD = "bold"
    FANTASY = "fantasy"
    SURPRISE = "surprise"


DEFAULT_STYLE = ColoringStyle.SURPRISE

STYLE_LABELS: Dict[ColoringStyle, str] = {
    ColoringStyle.STORYBOOK: "Storybook",
    ColoringStyle.CRAYONS: "Crayons",
    ColoringStyle.BOLD: "Bold & Bright",
    ColoringStyle.FANTASY: "Fantasy",
    ColoringStyle.SURPRISE: "Surprise Me",
}

STYLE_PROMPTS: Dict[ColoringStyle, str] = {
    ColoringStyle.STORYBOOK: (
        "Transform this drawing into a magical storybook illustration with soft, dreamy pastel colors, "
        "warm lighting, and enchanting fairy tale atmosphere. Use gentle watercolor-like tones with subtle gradients."
    ),
    ColoringStyle.CRAYONS: (
        "Color this drawing with bold, vibrant crayon-like colors. Use bright primary and secondary colors "
        "with a slightly textured, waxy appearance typical of children's crayon artwork."
    ),
    ColoringStyle.BOLD: (
        "Apply high contrast, eye-catching colors to this drawing. Use bold, saturated colors with strong "
        "contrasts between light and dark areas for maximum visual impact."
    ),
    ColoringStyle.FANTASY: (
        "Transform this into a magical fantasy world with shimmering, iridescent colors. Use mystical purples, "
        "blues, and pinks with magical sparkles and ethereal lighting effects."
    ),
    ColoringStyle.SURPRISE: (
        "Color this drawing creatively with an unexpected and delightful color palette that would surprise "
        "and amaze. Use artistic color combinations that are visually stunning."
    ),
}

LINE_ART_INSTRUCTION = (
    "Please generate a colored version of this drawing. Maintain the original line art structure "
    "but add beautiful colors according to the style description."
)


def resolve_style(style_key: Optional[str]) -> ColoringStyle:
    """Map a client style key to a known style, falling back to the default."""
    normalized = str(style_key or "").strip().lower()
    try:
        return ColoringStyle(normalized)
    except ValueError:
        return DEFAULT_STYLE


def prompt_for_style(style: ColoringStyle) -> str:
    return STYLE_PROMPTS[style]


def build_generation_prompt(style: ColoringStyle) -> str:
    return f"{prompt_for_style(style)}\n\n{LINE_ART_INSTRUCTION}"


def list_styles() -> List[Dict[str, Any]]:
    return [
        {
            "key": style.value,
            "label": STYLE_LABELS[style],
            "prompt": STYLE_PROMPTS[style],
            "is_default": style == DEFAULT_STYLE,
        }
        for style in ColoringStyle
    ]
