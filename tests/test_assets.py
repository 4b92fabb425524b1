import pygame

from orrery.render.assets import GLOW_CACHE, SurfaceCache, clear_caches, get_glow_surface


def _surface(width=1):
    return pygame.Surface((width, 1))


def test_cache_reuses_and_evicts_oldest():
    cache = SurfaceCache(2)
    rendered = []

    def render(width):
        def make():
            rendered.append(width)
            return _surface(width)
        return make

    first = cache.get("a", render(1))
    assert cache.get("a", render(1)) is first
    cache.get("b", render(2))
    cache.get("a", render(1))
    cache.get("c", render(3))
    assert len(cache) == 2
    cache.get("b", render(2))
    assert rendered == [1, 2, 3, 2]


def test_glow_surface_size_and_caching():
    clear_caches()
    glow = get_glow_surface(10, (255, 204, 64), 60, 120)
    assert glow.get_size() == (20, 20)
    assert glow.get_at((10, 10)).a == 120
    assert get_glow_surface(10, (255, 204, 64), 60, 120) is glow
    assert len(GLOW_CACHE) == 1
    clear_caches()
    assert len(GLOW_CACHE) == 0
