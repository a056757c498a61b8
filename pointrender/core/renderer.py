from __future__ import annotations
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import numpy as np

from .aggregator import ShadedSample, reduce_samples
from .errors import ConfigurationError, RenderCancelledError
from .intersector import DEFAULT_MAX_RAY_DISTANCE, Intersector, make_ray
from .ray import Ray, is_miss
from .sampler import PatternConfig, PixelCell, generate_all_samples
from .scene import SurfaceStore
from .shading import BlinnPhongShader, Light
from .utils import as_vec3, frozen, get_logger

_log = get_logger()

EXECUTORS = ("serial", "thread", "process")
_POLL_S = 0.05


@dataclass
class RenderSettings:
    corner_bias: float = 0.5
    include_center: bool = True
    max_ray_distance: float = DEFAULT_MAX_RAY_DISTANCE
    executor: str = "serial"
    workers: int = 1
    chunk_size: int = 1024
    timeout_s: Optional[float] = None

    def __post_init__(self) -> None:
        if self.executor not in EXECUTORS:
            raise ConfigurationError(f"executor must be one of {EXECUTORS}, got '{self.executor}'.")
        if self.workers <= 0:
            raise ConfigurationError("workers must be positive.")
        if self.chunk_size <= 0:
            raise ConfigurationError("chunk_size must be positive.")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ConfigurationError("timeout_s must be positive when provided.")

    def pattern(self) -> PatternConfig:
        return PatternConfig(include_center=bool(self.include_center), corner_bias=float(self.corner_bias))


@dataclass(frozen=True)
class RenderResult:
    colors: Dict[int, np.ndarray]
    stats: Dict[str, int] = field(default_factory=dict)

    def as_array(self, pixel_ids: Optional[Sequence[int]] = None) -> np.ndarray:
        ids = list(self.colors) if pixel_ids is None else list(pixel_ids)
        return np.asarray([self.colors[int(pid)] for pid in ids], dtype=np.float64).reshape(-1, 3)


@dataclass(frozen=True)
class _PassContext:
    """Everything a worker reads during one pass. Never mutated."""

    store: SurfaceStore
    lights: Tuple[Light, ...]
    camera_origin: np.ndarray
    max_ray_distance: float


def _shade_chunk(ctx: _PassContext, pixel_ids: Sequence[int], rays: Sequence[Ray]) -> Tuple[List[ShadedSample], int]:
    intersector = Intersector(ctx.store, ctx.max_ray_distance)
    shader = BlinnPhongShader(ctx.store)
    shaded: List[ShadedSample] = []
    hits = 0
    for pid, ray in zip(pixel_ids, rays):
        hit = intersector.intersect(ray)
        if not is_miss(hit):
            hits += 1
        shaded.append(ShadedSample(pixel_id=pid, rgb=shader.shade(hit, ctx.lights, ctx.camera_origin)))
    return shaded, hits


_WORKER_CTX: Optional[_PassContext] = None


def _init_process_worker(ctx: _PassContext) -> None:
    global _WORKER_CTX
    _WORKER_CTX = ctx


def _shade_chunk_in_process(pixel_ids: Sequence[int], rays: Sequence[Ray]) -> Tuple[List[ShadedSample], int]:
    if _WORKER_CTX is None:
        raise RuntimeError("Process worker was not initialised with a render context.")
    return _shade_chunk(_WORKER_CTX, pixel_ids, rays)


class Renderer:
    """Point-sampled renderer: sample, trace and shade in parallel, then average per pixel.

    Every sample's ray/hit/shade pipeline is independent and only reads the
    store and lights. The reduce step waits for all of them (a barrier).
    Abandoning a pass through ``timeout_s`` or ``cancel_event`` discards
    every partial result.
    """

    def __init__(
        self,
        store: SurfaceStore,
        lights: Iterable[Light],
        camera_origin,
        settings: Optional[RenderSettings] = None,
    ) -> None:
        self.store = store
        self.lights: Tuple[Light, ...] = tuple(lights)
        self.camera_origin = frozen(as_vec3(camera_origin, "camera_origin"))
        self.settings = settings or RenderSettings()
        # fail fast on the far clip and pattern before any cells arrive
        Intersector(store, self.settings.max_ray_distance)
        self.pattern = self.settings.pattern()

    def render(self, cells: Iterable[PixelCell], cancel_event: Optional[threading.Event] = None) -> RenderResult:
        cells = list(cells)
        if not cells:
            raise ConfigurationError("No pixel cells to render.")
        pixel_identities = [cell.pixel_id for cell in cells]
        if len(set(pixel_identities)) != len(pixel_identities):
            raise ConfigurationError("Pixel cell identities must be unique.")
        if not self.lights:
            _log.warning("Rendering without lights; only emissive and ambient terms contribute.")

        samples = generate_all_samples(cells, self.pattern)
        # every ray is built before any shading so camera/screen errors surface first
        rays = [make_ray(self.camera_origin, s.position) for s in samples]
        sample_ids = [s.pixel_id for s in samples]

        cfg = self.settings
        _log.info(
            "Renderer: %d pixels, %d samples (%d per cell), executor=%s, workers=%d.",
            len(cells), len(samples), self.pattern.samples_per_cell, cfg.executor, cfg.workers,
        )

        ctx = _PassContext(
            store=self.store,
            lights=self.lights,
            camera_origin=self.camera_origin,
            max_ray_distance=float(cfg.max_ray_distance),
        )
        chunks = [
            (start, min(start + cfg.chunk_size, len(samples)))
            for start in range(0, len(samples), cfg.chunk_size)
        ]
        results = self._map(ctx, chunks, sample_ids, rays, cancel_event)

        shaded: List[ShadedSample] = []
        hits = 0
        for chunk_samples, chunk_hits in results:
            shaded.extend(chunk_samples)
            hits += chunk_hits

        colors = reduce_samples(shaded, pixel_identities)
        stats = {
            "pixels": len(colors),
            "samples": len(shaded),
            "hits": hits,
            "misses": len(shaded) - hits,
        }
        _log.info("Renderer finished: %d samples (%d hits) → %d pixels", len(shaded), hits, len(colors))
        return RenderResult(colors=colors, stats=stats)

    # -- internals --
    def _deadline(self) -> Optional[float]:
        if self.settings.timeout_s is None:
            return None
        return time.monotonic() + float(self.settings.timeout_s)

    @staticmethod
    def _abandoned(cancel_event: Optional[threading.Event], deadline: Optional[float]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    def _map(
        self,
        ctx: _PassContext,
        chunks: List[Tuple[int, int]],
        sample_ids: List[int],
        rays: List[Ray],
        cancel_event: Optional[threading.Event],
    ) -> List[Tuple[List[ShadedSample], int]]:
        deadline = self._deadline()
        cfg = self.settings

        if cfg.executor == "serial":
            results = []
            for start, stop in chunks:
                if self._abandoned(cancel_event, deadline):
                    raise RenderCancelledError("Render pass abandoned before completion; partial results discarded.")
                results.append(_shade_chunk(ctx, sample_ids[start:stop], rays[start:stop]))
            return results

        pool: Executor
        if cfg.executor == "thread":
            pool = ThreadPoolExecutor(max_workers=cfg.workers)
        else:
            pool = ProcessPoolExecutor(
                max_workers=cfg.workers,
                initializer=_init_process_worker,
                initargs=(ctx,),
            )

        abandoned = False
        try:
            futures: List[Future] = []
            for start, stop in chunks:
                if cfg.executor == "thread":
                    fut = pool.submit(_shade_chunk, ctx, sample_ids[start:stop], rays[start:stop])
                else:
                    fut = pool.submit(_shade_chunk_in_process, sample_ids[start:stop], rays[start:stop])
                futures.append(fut)
            _log.debug("Dispatched %d chunks to %s pool.", len(futures), cfg.executor)

            pending = set(futures)
            while pending:
                if self._abandoned(cancel_event, deadline):
                    abandoned = True
                    for fut in pending:
                        fut.cancel()
                    raise RenderCancelledError("Render pass abandoned before completion; partial results discarded.")
                _, pending = wait(pending, timeout=_POLL_S, return_when=FIRST_COMPLETED)
            return [fut.result() for fut in futures]
        finally:
            pool.shutdown(wait=not abandoned, cancel_futures=abandoned)
