from __future__ import annotations

import math
import random
from typing import Iterable, Sequence, TYPE_CHECKING

import numpy as np
import pygame

from .assets import Color, get_glow_surface, get_text_surface
from .camera import CameraRig

if TYPE_CHECKING:  # pragma: no cover
    from orrery.core.config import RenderCfg
    from orrery.core.model import PlanetViewModel


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def body_pixel_radius(radius_earths: float, *, minimum: int = 2, maximum: int = 14) -> int:
    """Display radius in pixels; log-scaled so Jupiter does not swallow Mercury."""

    return int(_clamp(round(3.0 + 3.0 * math.log1p(radius_earths)), minimum, maximum))


def draw_glow(
    surface: pygame.Surface,
    position: tuple[int, int],
    radius: int,
    intensity: float,
    *,
    color: tuple[int, int, int],
    outer_alpha: int = 60,
    inner_alpha: int = 120,
    radius_factor: float = 1.4,
) -> None:
    if intensity <= 0.0 or radius <= 0:
        return
    intensity = _clamp(intensity, 0.0, 1.0)
    glow_radius = max(2, int(radius * (1.8 + radius_factor * intensity)))
    glow_surface = get_glow_surface(
        glow_radius, color, int(outer_alpha * intensity), int(inner_alpha * intensity)
    )
    surface.blit(glow_surface, glow_surface.get_rect(center=position))


def draw_sun(
    surface: pygame.Surface,
    position: tuple[int, int],
    radius: int,
    *,
    color: tuple[int, int, int],
    bloom: bool,
) -> None:
    if bloom:
        draw_glow(surface, position, radius, 1.0, color=color, radius_factor=2.2)
    pygame.draw.circle(surface, color, position, radius)


def draw_body(
    surface: pygame.Surface,
    planet: "PlanetViewModel",
    position: tuple[int, int],
    *,
    render_cfg: "RenderCfg",
    selected: bool = False,
    bloom: bool = False,
) -> None:
    radius = body_pixel_radius(planet.radius)
    if bloom and selected:
        draw_glow(surface, position, radius, 0.8, color=planet.color)
    pygame.draw.circle(surface, planet.color, position, radius)
    if planet.stale:
        pygame.draw.circle(surface, render_cfg.stale_color, position, radius + 3, 1)
    if selected:
        pygame.draw.circle(surface, render_cfg.selection_color, position, radius + 6, 2)


def orbit_ring_points(
    camera: CameraRig,
    distance_au: float,
    segments: int,
) -> list[tuple[int, int]]:
    """Screen points of a circular reference orbit at *distance_au*."""

    segments = max(8, int(segments))
    angles = np.linspace(0.0, 2.0 * math.pi, segments + 1)
    xs = distance_au * np.cos(angles)
    ys = distance_au * np.sin(angles)
    return [camera.body_to_screen((x, y)) for x, y in zip(xs, ys)]


def draw_orbit_line(
    surface: pygame.Surface,
    color: Color,
    points: Sequence[tuple[int, int]],
    width: int,
    *,
    antialias: bool = True,
) -> None:
    if len(points) < 2:
        return
    if width <= 1 and antialias:
        pygame.draw.aalines(surface, color, False, points)
    else:
        pygame.draw.lines(surface, color, False, points, max(1, width))
        if antialias:
            pygame.draw.aalines(surface, color, False, points)


def draw_label(
    surface: pygame.Surface,
    font: pygame.font.Font,
    text: str,
    anchor: tuple[int, int],
    color: tuple[int, int, int],
    *,
    offset: int = 10,
) -> None:
    text_surf = get_text_surface(font, text, color)
    rect = text_surf.get_rect()
    rect.midbottom = (anchor[0], anchor[1] - offset)
    surface.blit(text_surf, rect)


def generate_starfield(
    num_stars: int,
    *,
    size: tuple[int, int],
    rng: random.Random | None = None,
) -> list[dict[str, object]]:
    rng = rng or random.Random()
    width, height = size
    stars: list[dict[str, object]] = []
    for _ in range(max(0, num_stars)):
        x = rng.uniform(0, width)
        y = rng.uniform(0, height)
        radius = rng.choice([1, 1, 1, 2])
        alpha = rng.randint(80, 150)
        base = rng.randint(200, 240)
        color = (
            max(0, base - rng.randint(10, 25)),
            max(0, base - rng.randint(5, 15)),
            base,
        )
        star_surface = pygame.Surface((radius * 2, radius * 2), pygame.SRCALPHA)
        pygame.draw.circle(star_surface, (*color, alpha), (radius, radius), radius)
        stars.append({"pos": (x, y), "surface": star_surface, "radius": radius})
    return stars


def draw_starfield(
    surface: pygame.Surface,
    starfield: Iterable[dict[str, object]],
    camera_center: np.ndarray,
    ppa: float,
    *,
    render_cfg: "RenderCfg",
) -> None:
    width, height = surface.get_size()
    offset_x = camera_center[0] * ppa * render_cfg.starfield_parallax
    offset_y = camera_center[1] * ppa * render_cfg.starfield_parallax
    for star in starfield:
        base_x, base_y = star["pos"]  # type: ignore[index]
        star_surface = star["surface"]  # type: ignore[index]
        radius = star["radius"]  # type: ignore[index]
        sx = int((base_x - offset_x) % width)
        sy = int((base_y + offset_y) % height)
        surface.blit(star_surface, (sx - radius, sy - radius))
