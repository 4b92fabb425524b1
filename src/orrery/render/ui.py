from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

import pygame

from .assets import Color, get_text_surface
from orrery.core.narration import format_date, playback_status

if TYPE_CHECKING:  # pragma: no cover
    from orrery.core.model import OrbitSnapshot
    from orrery.core.performance import FrameStats
    from orrery.core.quality import QualitySettings


def hud_lines(
    snapshot: "OrbitSnapshot",
    settings: "QualitySettings",
    stats: Optional["FrameStats"] = None,
) -> list[str]:
    """Text rows for the status panel in the top left corner."""

    lines = [
        format_date(snapshot.instant),
        playback_status(snapshot),
        f"Selected: {snapshot.selected_planet or 'none'}",
        f"Quality: {settings.tier.name.lower()}",
    ]
    if snapshot.cursor is not None:
        lines.append(f"Tour: {snapshot.cursor.track_name} ({snapshot.cursor.elapsed:.1f} s)")
    if snapshot.stale_bodies:
        lines.append("Stale: " + ", ".join(snapshot.stale_bodies))
    if stats is not None and stats.frames:
        lines.append(f"{stats.fps:.0f} fps ({stats.mean_ms:.1f} ms)")
    return lines


def wrap_text(font: pygame.font.Font, text: str, max_width: int) -> list[str]:
    words = text.split()
    lines: list[str] = []
    current = ""
    for word in words:
        candidate = f"{current} {word}".strip()
        if current and font.size(candidate)[0] > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def build_text_panel(
    font: pygame.font.Font,
    lines: Sequence[tuple[str, tuple[int, int, int]]],
    *,
    background_color: Color,
    padding: tuple[int, int] = (14, 14),
    alpha: int | None = None,
) -> pygame.Surface:
    if not lines:
        raise ValueError("lines must not be empty")
    padding_x, padding_y = padding
    line_height = font.get_linesize()
    width = max(font.size(text)[0] for text, _ in lines) + padding_x * 2
    height = line_height * len(lines) + padding_y * 2
    panel_surface = pygame.Surface((width, height), pygame.SRCALPHA)
    pygame.draw.rect(
        panel_surface,
        background_color,
        panel_surface.get_rect(),
        border_radius=12,
    )
    for idx, (text, color) in enumerate(lines):
        if not text:
            continue
        text_surf = get_text_surface(font, text, color)
        panel_surface.blit(text_surf, (padding_x, padding_y + idx * line_height))
    if alpha is not None and alpha < 255:
        panel_surface.set_alpha(alpha)
    return panel_surface
