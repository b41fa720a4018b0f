"""Theme and style modifier tables.

A theme supplies two pieces of text: a content modifier prepended to every
image prompt, and the system instruction for choice generation.  A style
supplies the art-direction suffix of the image prompt.  Each table has a
fallback entry that is used when the caller passes an unknown name.

The built-in tables can be extended or overridden with a YAML file
(``THEMES_FILE``):

    fallback_theme: Fantasy
    fallback_style: Watercolor Concept
    themes:
      Noir:
        content: Rain-slicked streets, neon signs, ...
        choice_prompt: You are a hard-boiled co-author ...
    styles:
      Pixel Art: 16-bit pixel art, limited palette, ...
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from ..config import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThemeEntry:
    """Text attached to one theme name."""
    content_modifier: str
    choice_prompt: str


_CHOICE_PROMPT_TEMPLATE = (
    "You are {persona}. Look back through the history to find the most recent "
    "detailed scene description (provided by the Vision Model on the first turn). "
    "Use this as your primary grounding for the visual state. Your task is to "
    "generate the next three distinct action options for the user. These options "
    "MUST: 1) Be a concrete, descriptive action the protagonist is taking; "
    "2) Be highly visually descriptive and distinct; 3) {focus}. "
    'Your response MUST be a JSON object containing one field: "choices", '
    "which is an array of strings."
)


def _choice_prompt(persona: str, focus: str) -> str:
    return _CHOICE_PROMPT_TEMPLATE.format(persona=persona, focus=focus)


DEFAULT_THEMES: dict[str, ThemeEntry] = {
    "Fantasy": ThemeEntry(
        content_modifier=(
            "Ancient mythical realm, epic scope, quest for powerful artifacts, "
            "highly detailed world-building, high fantasy setting."
        ),
        choice_prompt=_choice_prompt(
            "a creative co-author for an epic quest",
            "Drive an epic quest or high-stakes confrontation, focusing on magic, "
            "combat, or ancient lore",
        ),
    ),
    "Comedy": ThemeEntry(
        content_modifier=(
            "Wild and wacky elements, absurd plot devices, bright colors, exaggerated "
            "expressions, slapstick, unexpected character placement, ridiculous situation."
        ),
        choice_prompt=_choice_prompt(
            "a hilarious, chaotic co-author for a comedy adventure",
            "Prioritize physical comedy, absurd/unlikely actions, or bizarre character "
            "interaction to create chaos and plot divergence",
        ),
    ),
    "Domestic": ThemeEntry(
        content_modifier=(
            "Suburban home, familiar household objects, soft lighting, cozy environment, "
            "mundane setting, focus on simple tasks and activities at home, slice-of-life."
        ),
        choice_prompt=_choice_prompt(
            "a mindful, grounded co-author for a domestic adventure",
            "Focus on low-stakes, relatable, simple physical tasks (e.g., cleaning, minor "
            "repairs, food prep) or simple decision points",
        ),
    ),
}

DEFAULT_STYLES: dict[str, str] = {
    "Cinematic Painting": (
        "cinematic, highly detailed, dramatic atmosphere, brushstrokes, oil on canvas, 8k"
    ),
    "Manga": (
        "Japanese manga art, detailed linework, black and white shading, high contrast, "
        "dramatic, detailed panel composition"
    ),
    "Watercolor Concept": (
        "loose watercolor sketch, concept art, high negative space, minimal detail, rough "
        "ink wash, expressive brushstrokes, emotional atmosphere, soft edges, art "
        "direction sheet"
    ),
}


class ThemeBook:
    """Lookup tables for theme and style modifiers with fallbacks."""

    def __init__(
        self,
        themes: Mapping[str, ThemeEntry],
        styles: Mapping[str, str],
        fallback_theme: str,
        fallback_style: str,
    ):
        if fallback_theme not in themes:
            raise ValueError(f"Fallback theme '{fallback_theme}' is not in the theme table")
        if fallback_style not in styles:
            raise ValueError(f"Fallback style '{fallback_style}' is not in the style table")
        self._themes = dict(themes)
        self._styles = dict(styles)
        self.fallback_theme = fallback_theme
        self.fallback_style = fallback_style

    @classmethod
    def default(cls) -> "ThemeBook":
        return cls(DEFAULT_THEMES, DEFAULT_STYLES, config.DEFAULT_THEME, config.DEFAULT_STYLE)

    @classmethod
    def from_yaml(cls, path: Path, base: "ThemeBook | None" = None) -> "ThemeBook":
        """Load a YAML override file merged over *base* (defaults if None)."""
        base = base or cls.default()
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")

        themes = dict(base._themes)
        for name, entry in (data.get("themes") or {}).items():
            if not isinstance(entry, dict):
                raise ValueError(f"{path}: theme '{name}' must be a mapping")
            previous = themes.get(name)
            content = entry.get("content") or (previous.content_modifier if previous else "")
            prompt = entry.get("choice_prompt") or (previous.choice_prompt if previous else "")
            if not content or not prompt:
                raise ValueError(f"{path}: theme '{name}' needs 'content' and 'choice_prompt'")
            themes[name] = ThemeEntry(content_modifier=content, choice_prompt=prompt)

        styles = dict(base._styles)
        for name, text in (data.get("styles") or {}).items():
            styles[name] = str(text)

        book = cls(
            themes,
            styles,
            data.get("fallback_theme", base.fallback_theme),
            data.get("fallback_style", base.fallback_style),
        )
        logger.info("Loaded theme book from %s (%d themes, %d styles)",
                    path, len(themes), len(styles))
        return book

    # ==== Lookups ====

    def resolve_theme(self, name: str | None) -> str:
        """Known theme name for *name*, or the fallback."""
        if name in self._themes:
            return name
        if name:
            logger.warning("Unknown theme '%s', using '%s'", name, self.fallback_theme)
        return self.fallback_theme

    def resolve_style(self, name: str | None) -> str:
        """Known style name for *name*, or the fallback."""
        if name in self._styles:
            return name
        if name:
            logger.warning("Unknown style '%s', using '%s'", name, self.fallback_style)
        return self.fallback_style

    def theme(self, name: str | None) -> ThemeEntry:
        return self._themes[self.resolve_theme(name)]

    def content_modifier(self, name: str | None) -> str:
        return self.theme(name).content_modifier

    def choice_prompt(self, name: str | None) -> str:
        return self.theme(name).choice_prompt

    def style_modifier(self, name: str | None) -> str:
        return self._styles[self.resolve_style(name)]

    def theme_names(self) -> list[str]:
        return list(self._themes)

    def style_names(self) -> list[str]:
        return list(self._styles)


_theme_book: ThemeBook | None = None


def get_theme_book() -> ThemeBook:
    """Get or create the process-wide theme book."""
    global _theme_book
    if _theme_book is None:
        if config.THEMES_FILE:
            _theme_book = ThemeBook.from_yaml(Path(config.THEMES_FILE))
        else:
            _theme_book = ThemeBook.default()
    return _theme_book


def reset_theme_book() -> None:
    """Drop the cached theme book so the next call reloads it."""
    global _theme_book
    _theme_book = None
