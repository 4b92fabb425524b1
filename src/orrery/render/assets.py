from __future__ import annotations

from collections import OrderedDict
from typing import Callable, Hashable, Iterable

import pygame


Color = tuple[int, int, int] | tuple[int, int, int, int]


class SurfaceCache:
    """Least-recently-used cache of pre-rendered surfaces."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max(1, max_size)
        self._surfaces: OrderedDict[Hashable, pygame.Surface] = OrderedDict()

    def __len__(self) -> int:
        return len(self._surfaces)

    def get(self, key: Hashable, render: Callable[[], pygame.Surface]) -> pygame.Surface:
        cached = self._surfaces.get(key)
        if cached is not None:
            self._surfaces.move_to_end(key)
            return cached
        surface = render()
        self._surfaces[key] = surface
        if len(self._surfaces) > self.max_size:
            self._surfaces.popitem(last=False)
        return surface

    def clear(self) -> None:
        self._surfaces.clear()


TEXT_CACHE = SurfaceCache(256)
# Glow sprites are keyed by radius, so zooming churns through them quickly.
GLOW_CACHE = SurfaceCache(64)


def get_text_surface(font: pygame.font.Font, text: str, color: Color) -> pygame.Surface:
    """Return a cached rendered surface for the given font, text and color."""

    return TEXT_CACHE.get((id(font), text, color), lambda: font.render(text, True, color))


def get_glow_surface(
    glow_radius: int,
    color: tuple[int, int, int],
    outer_alpha: int,
    inner_alpha: int,
) -> pygame.Surface:
    """Two concentric translucent discs, ``2 * glow_radius`` pixels wide."""

    def render() -> pygame.Surface:
        surface = pygame.Surface((glow_radius * 2, glow_radius * 2), pygame.SRCALPHA)
        center = (glow_radius, glow_radius)
        if outer_alpha > 0:
            pygame.draw.circle(surface, (*color, outer_alpha), center, glow_radius)
        if inner_alpha > 0:
            pygame.draw.circle(surface, (*color, inner_alpha), center, max(1, int(glow_radius * 0.55)))
        return surface

    return GLOW_CACHE.get((glow_radius, color, outer_alpha, inner_alpha), render)


def clear_caches() -> None:
    TEXT_CACHE.clear()
    GLOW_CACHE.clear()


def load_font(preferred_names: Iterable[str], size: int, *, bold: bool = False) -> pygame.font.Font:
    """First installed font from *preferred_names*, else pygame's default font."""

    for name in preferred_names:
        path = pygame.font.match_font(name, bold=bold)
        if path:
            return pygame.font.Font(path, size)
    font = pygame.font.Font(None, size)
    font.set_bold(bold)
    return font
