"""Single source of truth for the published orbit state."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from .config import CINEMATIC_CFG, EPHEMERIS_CFG, CinematicCfg, EphemerisCfg
from .ephemeris import EphemerisResolver
from .errors import ValidationError
from .logging_utils import TelemetryLogger
from .model import ClockMode, OrbitSnapshot, PlanetViewModel
from .timekeeping import SimulationClock, TickAccumulator
from orrery.data.bodies import CATALOG, Body, find_body, visible_bodies
from orrery.data.deeplink import DeepLink
from orrery.data.tracks import CinematicTrack, grand_tour

log = logging.getLogger(__name__)

Subscriber = Callable[[OrbitSnapshot], None]
TrackFactory = Callable[[datetime], CinematicTrack]
SelectionTarget = Union[Body, str, None]

NAVIGATION_STEPS = ("next", "previous", "first", "last")


class OrbitStore:
    """Owns the clock, the resolver and the current :class:`OrbitSnapshot`.

    Every mutator that changes state replaces the snapshot exactly once and
    notifies subscribers with the new one. Subscribers never receive a
    reference into store internals.
    """

    def __init__(
        self,
        resolver: EphemerisResolver,
        *,
        clock: Optional[SimulationClock] = None,
        start: Optional[datetime] = None,
        deep_link: Optional[DeepLink] = None,
        tick_interval: float = 0.0,
        track_factory: Optional[TrackFactory] = None,
        ephemeris_cfg: EphemerisCfg = EPHEMERIS_CFG,
        cinematic_cfg: CinematicCfg = CINEMATIC_CFG,
        telemetry: Optional[TelemetryLogger] = None,
    ) -> None:
        self._resolver = resolver
        self._clock = clock or SimulationClock(start or datetime.now(timezone.utc))
        self._accumulator = TickAccumulator(max(0.0, tick_interval))
        self._cinematic_cfg = cinematic_cfg
        self._track_factory = track_factory or self._default_track
        self._telemetry = telemetry
        self._bodies = visible_bodies(
            include_dwarf_planets=ephemeris_cfg.include_dwarf_planets,
            include_moon=ephemeris_cfg.include_moon,
        )
        self._navigation = tuple(
            sorted(
                (body for body in self._bodies if CATALOG[body].navigable),
                key=lambda body: CATALOG[body].distance,
            )
        )
        self._subscribers: list[Subscriber] = []
        self._selected: Optional[Body] = None
        self._show_orbits = True
        self._show_labels = True
        self._sequence = 0

        if deep_link is not None:
            self._apply_deep_link(deep_link)
        self._snapshot = self._compose()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> OrbitSnapshot:
        return self._snapshot

    @property
    def bodies(self) -> tuple[Body, ...]:
        return self._bodies

    @property
    def navigation_order(self) -> tuple[Body, ...]:
        return self._navigation

    @property
    def tick_interval(self) -> float:
        return self._accumulator.interval

    @property
    def resolver(self) -> EphemerisResolver:
        return self._resolver

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def attach_telemetry(self, telemetry: Optional[TelemetryLogger]) -> None:
        self._telemetry = telemetry
        self._resolver.attach_telemetry(telemetry)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def advance_time(self, delta: float) -> OrbitSnapshot:
        """One frame: cadence gate, clock tick, batch resolution, publish."""

        if self._clock.mode is ClockMode.PAUSED:
            self._accumulator.clear()
            return self._snapshot
        self._accumulator.accrue(delta)
        released = self._accumulator.consume()
        if released <= 0.0:
            return self._snapshot

        was_cinematic = self._clock.mode is ClockMode.CINEMATIC
        self._clock.tick(released)
        if was_cinematic and self._clock.mode is not ClockMode.CINEMATIC:
            self._event("cinematic", "finished")
        return self._publish()

    def set_speed(self, speed: float) -> OrbitSnapshot:
        try:
            self._clock.set_speed(speed)
        except ValidationError as exc:
            log.warning("Ignoring speed %r: %s", speed, exc)
            return self._snapshot
        return self._publish()

    def toggle_pause(self) -> OrbitSnapshot:
        self._clock.toggle_pause()
        return self._publish()

    def select_planet(self, target: SelectionTarget) -> OrbitSnapshot:
        """Select a body by enum, name or navigation step.

        Navigation steps wrap around the distance-sorted planets. Unknown
        names are ignored and nothing is published.
        """

        if target is None:
            selected = None
        elif isinstance(target, str) and target.strip().lower() in NAVIGATION_STEPS:
            selected = self._step(target.strip().lower())
        else:
            selected = find_body(target)
            if selected is None or selected not in self._bodies:
                log.debug("Ignoring selection of unknown body %r", target)
                return self._snapshot
        self._selected = selected
        return self._publish()

    def start_cinematic(self, track: Optional[CinematicTrack] = None) -> OrbitSnapshot:
        track = track or self._track_factory(self._clock.instant)
        self._clock.start_cinematic(track)
        self._accumulator.clear()
        self._event("cinematic", "started", {"track": track.name, "duration": track.duration})
        return self._publish()

    def stop_cinematic(self) -> OrbitSnapshot:
        if not self._clock.stop_cinematic():
            return self._snapshot
        self._event("cinematic", "stopped")
        return self._publish()

    def toggle_cinematic(self) -> OrbitSnapshot:
        if self._clock.mode is ClockMode.CINEMATIC:
            return self.stop_cinematic()
        return self.start_cinematic()

    def toggle_orbits_visible(self) -> OrbitSnapshot:
        self._show_orbits = not self._show_orbits
        return self._publish()

    def toggle_labels_visible(self) -> OrbitSnapshot:
        self._show_labels = not self._show_labels
        return self._publish()

    def jump_to_date(self, instant: datetime) -> OrbitSnapshot:
        self._clock.jump_to(instant)
        self._resolver.clear()
        self._accumulator.clear()
        return self._publish()

    def set_tick_interval(self, seconds: float) -> None:
        """Change the cadence gate; takes effect from the next frame."""

        self._accumulator.interval = max(0.0, float(seconds))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _default_track(self, start: datetime) -> CinematicTrack:
        cfg = self._cinematic_cfg
        return grand_tour(
            start,
            self._navigation,
            hold_seconds=cfg.hold_seconds,
            days_per_stop=cfg.days_per_stop,
            name=cfg.track_name,
        )

    def _apply_deep_link(self, link: DeepLink) -> None:
        if link.instant is not None:
            self._clock.jump_to(link.instant)
        if link.speed is not None:
            try:
                self._clock.set_speed(link.speed)
            except ValidationError as exc:
                log.warning("Ignoring deep-link speed: %s", exc)
        if link.show_orbits is not None:
            self._show_orbits = link.show_orbits
        if link.show_labels is not None:
            self._show_labels = link.show_labels
        if link.planet is not None and link.planet in self._bodies:
            self._selected = link.planet
        elif link.cinematic:
            self._clock.start_cinematic(self._track_factory(self._clock.instant))

    def _step(self, step: str) -> Optional[Body]:
        order = self._navigation
        if not order:
            return None
        if step == "first":
            return order[0]
        if step == "last":
            return order[-1]
        current = self._selected if self._selected in order else None
        if current is None:
            return order[0] if step == "next" else order[-1]
        index = order.index(current)
        offset = 1 if step == "next" else -1
        return order[(index + offset) % len(order)]

    def _compose(self) -> OrbitSnapshot:
        instant = self._clock.instant
        resolutions = self._resolver.resolve_batch(self._bodies, instant)
        planets = {
            body.value: PlanetViewModel.from_resolution(CATALOG[body], resolution)
            for body, resolution in resolutions.items()
        }
        return OrbitSnapshot(
            planets=planets,
            instant=instant,
            speed=self._clock.speed,
            mode=self._clock.mode,
            selected_planet=self._selected.value if self._selected is not None else None,
            cursor=self._clock.cursor,
            show_orbits=self._show_orbits,
            show_labels=self._show_labels,
            sequence=self._sequence,
        )

    def _publish(self) -> OrbitSnapshot:
        self._sequence += 1
        snapshot = self._compose()
        self._snapshot = snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                log.exception("Snapshot subscriber %r failed", callback)
        return snapshot

    def _event(self, event_type: str, subject: str, details: Optional[dict] = None) -> None:
        log.debug("%s: %s %s", event_type, subject, details or "")
        if self._telemetry is not None:
            self._telemetry.log_event(event_type, subject, details)


__all__ = ["NAVIGATION_STEPS", "OrbitStore", "SelectionTarget", "TrackFactory"]
