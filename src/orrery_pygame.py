# src/orrery_pygame.py
import argparse
import logging
import sys
from datetime import datetime, timezone

import pygame

from orrery.core.commands import handle_key
from orrery.core.config import (
    CINEMATIC_CFG,
    CLOCK_CFG,
    DEVICE_CFG,
    EPHEMERIS_CFG,
    PERFORMANCE_CFG,
    RENDER_CFG,
    SETTINGS_PATH,
    TELEMETRY_CFG,
    apply_overrides,
    load_user_settings,
)
from orrery.core.device import CapabilityClassifier, DeviceContext, HostProbes
from orrery.core.ephemeris import EphemerisResolver
from orrery.core.logging_utils import TelemetryLogger
from orrery.core.model import days_since_j2000
from orrery.core.narration import describe_scene, describe_selected
from orrery.core.oracle import AstropyOracle
from orrery.core.performance import PerformanceMonitor, process_memory_fraction
from orrery.core.store import OrbitStore
from orrery.core.timekeeping import FrameTimer, SimulationClock
from orrery.data.bodies import CATALOG, Body
from orrery.data.deeplink import build_query, parse_query
from orrery.data.tracks import load_track
from orrery.render import (
    CameraRig,
    body_pixel_radius,
    build_text_panel,
    clear_caches,
    draw_body,
    draw_label,
    draw_orbit_line,
    draw_starfield,
    draw_sun,
    generate_starfield,
    hud_lines,
    load_font,
    orbit_ring_points,
    wrap_text,
)

log = logging.getLogger("orrery")

MEMORY_SAMPLE_EVERY_FRAMES = 60


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive solar system orrery")
    parser.add_argument(
        "--link",
        default="",
        help="Share link or query string to start from (e.g. 'planet=Mars&speed=10')",
    )
    parser.add_argument("--track", help="JSON cinematic track to play instead of the grand tour")
    parser.add_argument(
        "--ephemeris",
        help="astropy ephemeris name (default from settings, 'builtin')",
    )
    parser.add_argument("--no-telemetry", action="store_true", help="Do not record a run directory")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    user_settings = load_user_settings(SETTINGS_PATH)
    render_cfg = apply_overrides(RENDER_CFG, user_settings.get("render"))
    clock_cfg = apply_overrides(CLOCK_CFG, user_settings.get("clock"))
    ephemeris_cfg = apply_overrides(EPHEMERIS_CFG, user_settings.get("ephemeris"))
    cinematic_cfg = apply_overrides(CINEMATIC_CFG, user_settings.get("cinematic"))
    performance_cfg = apply_overrides(PERFORMANCE_CFG, user_settings.get("performance"))
    device_cfg = apply_overrides(DEVICE_CFG, user_settings.get("device"))
    telemetry_cfg = apply_overrides(TELEMETRY_CFG, user_settings.get("telemetry"))

    logging.basicConfig(
        level=getattr(logging, str(render_cfg.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    pygame.init()
    pygame.display.set_caption("Orrery")
    screen = pygame.display.set_mode((render_cfg.width, render_cfg.height), pygame.RESIZABLE)
    current_size = screen.get_size()

    telemetry = None if args.no_telemetry else TelemetryLogger(cfg=telemetry_cfg)

    device = DeviceContext(
        CapabilityClassifier(HostProbes(window_size=lambda: current_size), cfg=device_cfg),
        cfg=device_cfg,
        telemetry=telemetry,
    )
    device.mount()

    oracle = AstropyOracle(args.ephemeris or ephemeris_cfg.ephemeris)
    resolver = EphemerisResolver(oracle, cfg=ephemeris_cfg, telemetry=telemetry)
    custom_track = load_track(args.track) if args.track else None
    store = OrbitStore(
        resolver,
        clock=SimulationClock(datetime.now(timezone.utc), cfg=clock_cfg),
        deep_link=parse_query(args.link, clock_cfg) if args.link else None,
        tick_interval=device.settings.sim_tick_interval,
        track_factory=(lambda start: custom_track) if custom_track is not None else None,
        ephemeris_cfg=ephemeris_cfg,
        cinematic_cfg=cinematic_cfg,
        telemetry=telemetry,
    )

    monitor = PerformanceMonitor(performance_cfg)
    monitor.subscribe(device.apply_degrade)

    camera = CameraRig(
        current_size,
        render_cfg.pixels_per_au,
        min_ppa=render_cfg.min_pixels_per_au,
        max_ppa=render_cfg.max_pixels_per_au,
        radial_exponent=render_cfg.radial_exponent,
    )

    font_hud = load_font(render_cfg.font_names, 16)
    font_label = load_font(render_cfg.font_names, 13)
    starfield = generate_starfield(
        int(device.settings.star_count * render_cfg.star_density), size=current_size
    )

    def on_settings(profile, settings):
        nonlocal starfield
        store.set_tick_interval(settings.sim_tick_interval)
        clear_caches()
        starfield = generate_starfield(
            int(settings.star_count * render_cfg.star_density), size=current_size
        )

    device.subscribe(on_settings)

    announcement = describe_scene(store.snapshot)
    log.info(announcement)

    if telemetry is not None:
        telemetry.write_meta(
            {
                "start_instant": store.snapshot.instant.isoformat(),
                "link": build_query(store.snapshot),
                "ephemeris": oracle.ephemeris,
                "reference_frame": resolver.reference_frame,
                "bodies": [body.value for body in store.bodies],
                "tier": device.settings.tier.name,
                "code_version": "v1.0",
            }
        )

    frame_timer = FrameTimer()
    clock = pygame.time.Clock()
    frame_counter = 0
    memory_fraction = None
    running = True

    def quit_app():
        nonlocal running
        running = False

    def draw_scene(snapshot, settings):
        screen.fill(render_cfg.background_color)
        draw_starfield(screen, starfield, camera.center, camera.ppa, render_cfg=render_cfg)

        if snapshot.show_orbits:
            segments = settings.sphere_segments * render_cfg.orbit_segments_per_sphere_segment
            for planet in snapshot.planets_by_distance:
                points = orbit_ring_points(camera, planet.distance, segments)
                draw_orbit_line(
                    screen, render_cfg.orbit_color, points, 1, antialias=settings.antialias
                )

        sun_pos = camera.world_to_screen(0.0, 0.0)
        sun_radius = body_pixel_radius(CATALOG[Body.SUN].radius, maximum=18)
        draw_sun(screen, sun_pos, sun_radius, color=render_cfg.sun_color, bloom=settings.enable_bloom)

        for name, planet in snapshot.planets.items():
            pos = camera.body_to_screen(planet.position)
            selected = name == snapshot.selected_planet
            draw_body(
                screen, planet, pos, render_cfg=render_cfg,
                selected=selected, bloom=settings.enable_bloom,
            )
            if snapshot.show_labels or selected:
                color = render_cfg.stale_color if planet.stale else render_cfg.label_color
                draw_label(screen, font_label, name, pos, color)

    def draw_hud(snapshot, settings):
        rows = [(text, render_cfg.hud_text_color) for text in hud_lines(snapshot, settings, monitor.stats())]
        panel = build_text_panel(font_hud, rows, background_color=render_cfg.hud_background_color)
        screen.blit(panel, (16, 16))

        details = describe_selected(snapshot)
        if details:
            width = min(420, current_size[0] // 3)
            rows = [(text, render_cfg.hud_text_color) for text in wrap_text(font_hud, details, width)]
            panel = build_text_panel(font_hud, rows, background_color=render_cfg.hud_background_color)
            screen.blit(panel, panel.get_rect(topright=(current_size[0] - 16, 16)))

        if announcement:
            rows = [(announcement, render_cfg.hud_text_color)]
            panel = build_text_panel(
                font_label, rows, background_color=render_cfg.hud_background_color, padding=(10, 6)
            )
            screen.blit(panel, panel.get_rect(midbottom=(current_size[0] // 2, current_size[1] - 16)))

    try:
        while running:
            now = pygame.time.get_ticks() / 1000.0
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    quit_app()
                elif event.type == pygame.VIDEORESIZE:
                    current_size = (event.w, event.h)
                    camera.update_size(current_size)
                    device.notify_viewport(event.w, event.h, now)
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_q and event.mod & pygame.KMOD_CTRL:
                        quit_app()
                        continue
                    key = event.unicode if event.unicode == "?" else pygame.key.name(event.key)
                    message = handle_key(store, key)
                    if message:
                        announcement = message
                        log.info(message)
                    elif key == "?":
                        announcement = describe_scene(store.snapshot)
                elif event.type == pygame.MOUSEWHEEL:
                    camera.zoom_by_factor(1.15 ** event.y)
                elif event.type == pygame.MOUSEBUTTONDOWN and event.button in (2, 3):
                    camera.begin_pan(event.pos)
                elif event.type == pygame.MOUSEBUTTONUP and event.button in (2, 3):
                    camera.end_pan()
                elif event.type == pygame.MOUSEMOTION:
                    camera.pan(event.pos)

            device.poll(now)
            settings = device.settings

            dt = frame_timer.tick()
            snapshot = store.advance_time(dt)

            camera.follow(snapshot)
            camera.update(render_cfg.camera_smoothing)
            draw_scene(snapshot, settings)
            draw_hud(snapshot, settings)
            pygame.display.flip()

            frame_counter += 1
            if frame_counter % MEMORY_SAMPLE_EVERY_FRAMES == 0:
                memory_fraction = process_memory_fraction()
            monitor.record_frame(dt, memory_fraction)

            if telemetry is not None and frame_counter % telemetry_cfg.log_every_frames == 0:
                stats = monitor.stats()
                telemetry.log_ts(
                    [
                        dt * 1000.0,
                        stats.smoothed_ms,
                        days_since_j2000(snapshot.instant),
                        snapshot.speed,
                        snapshot.mode.value,
                        settings.tier.name,
                        len(snapshot.stale_bodies),
                    ]
                )

            clock.tick(render_cfg.fps_cap)
    finally:
        log.info("Performance: %s", monitor.report())
        device.unmount()
        if telemetry is not None:
            telemetry.log_event("shutdown", "", monitor.report())
            telemetry.close()
        pygame.quit()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pygame.quit()
        sys.exit()
