"""Pygame consumers of the orbit snapshot."""

from .camera import CameraRig, compress_radius
from .assets import (
    clear_caches,
    get_glow_surface,
    get_text_surface,
    load_font,
)
from .draw import (
    body_pixel_radius,
    draw_body,
    draw_glow,
    draw_label,
    draw_orbit_line,
    draw_starfield,
    draw_sun,
    generate_starfield,
    orbit_ring_points,
)
from .ui import (
    build_text_panel,
    hud_lines,
    wrap_text,
)

__all__ = [
    "CameraRig",
    "body_pixel_radius",
    "build_text_panel",
    "clear_caches",
    "compress_radius",
    "draw_body",
    "draw_glow",
    "draw_label",
    "draw_orbit_line",
    "draw_starfield",
    "draw_sun",
    "generate_starfield",
    "get_glow_surface",
    "get_text_surface",
    "hud_lines",
    "load_font",
    "orbit_ring_points",
    "wrap_text",
]
