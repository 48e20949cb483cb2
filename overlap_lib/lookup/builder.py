"""Lookup table builder.

The builder runs the resolver over every ordered pair of an alphabet for
one style and assembles the results into an ``OverlapTable``. That is
``len(alphabet) ** 2`` resolver calls plus one rasterization per letter, so
the work is exposed three ways:

    iter_build_table: Generator that yields a BuildProgress frame after
        every batch of pairs and returns the table. The caller decides when
        to resume, which keeps an event loop or request handler responsive.
    build_table: Runs the generator to completion, reporting every pair to
        an optional callback.
    TableBuildJob: Runs the build in a background thread with cancel().

Cancellation is checked between pairs. A cancelled build returns the pairs
finished so far, flagged ``complete=False``; the pair being resolved when
the cancel arrived is either stored whole or not at all.

Example usage:
    Streaming progress::

        from overlap_lib.lookup.builder import CancellationToken, iter_build_table

        token = CancellationToken()
        gen = iter_build_table('abc', 'straight', rules, provider, cancel_token=token)
        try:
            while True:
                frame = next(gen)
                print(f"{frame.processed}/{frame.total} {frame.current_pair}")
        except StopIteration as stop:
            table = stop.value
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from ..analysis.resolver import resolve_overlap, resolve_rotation
from ..config import BUILD_BATCH_SIZE, TABLE_FORMAT_VERSION
from ..domain.glyph import GlyphVariant, ProcessedGlyph
from ..domain.rules import RuleSet, normalize_letter
from ..domain.table import OverlapTable, TableMetadata
from ..errors import Diagnostics, GlyphUnavailable
from .serialization import compute_checksum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildProgress:
    """Progress of a table build.

    Attributes:
        processed: Pairs visited so far, including skipped ones.
        total: Pairs in the full alphabet x alphabet grid.
        current_pair: Last pair visited, or None before the first.
    """
    processed: int
    total: int
    current_pair: Optional[Tuple[str, str]] = None

    @property
    def fraction(self) -> float:
        return self.processed / self.total if self.total else 1.0

    def to_dict(self) -> dict:
        return {
            'processed': self.processed,
            'total': self.total,
            'current_pair': ''.join(self.current_pair) if self.current_pair else None,
            'percent': round(self.fraction * 100, 1),
        }


class CancellationToken:
    """Thread-safe flag checked by the builder between pairs."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def normalize_alphabet(alphabet) -> List[str]:
    """Normalized letters of ``alphabet`` in order, without duplicates."""
    seen = []
    for char in alphabet:
        letter = normalize_letter(char)
        if letter not in seen:
            seen.append(letter)
    return seen


class _GlyphLookup:
    """Fetch each letter's glyph once per build and remember failures."""

    def __init__(self, provider, style: str, variant: GlyphVariant,
                 diagnostics: Optional[Diagnostics]):
        self.provider = provider
        self.style = style
        self.variant = variant
        self.diagnostics = diagnostics
        self.glyphs: Dict[str, Optional[ProcessedGlyph]] = {}
        self.skipped: List[str] = []

    def get(self, letter: str) -> Optional[ProcessedGlyph]:
        if letter in self.glyphs:
            return self.glyphs[letter]
        try:
            glyph = self.provider(letter, self.style, self.variant)
        except GlyphUnavailable as e:
            glyph = None
            self.skipped.append(letter)
            if self.diagnostics is not None:
                self.diagnostics.record('glyph_unavailable', str(e),
                                        letter=letter, style=self.style)
            else:
                logger.warning("Skipping %r: %s", letter, e)
        self.glyphs[letter] = glyph
        return glyph


def iter_build_table(
    alphabet,
    style: str,
    rules: RuleSet,
    glyph_provider,
    variant=GlyphVariant.STANDARD,
    cancel_token: Optional[CancellationToken] = None,
    batch_size: int = BUILD_BATCH_SIZE,
    on_pair: Optional[Callable[[BuildProgress], None]] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Generator[BuildProgress, None, OverlapTable]:
    """Build a table, yielding progress after every ``batch_size`` pairs.

    Args:
        alphabet: Characters to cover; normalized and de-duplicated.
        style: Style identifier passed to the provider.
        rules: Rule snapshot used for every pair.
        glyph_provider: Callable (letter, style, variant) -> ProcessedGlyph
            raising GlyphUnavailable for letters it cannot draw.
        variant: Glyph variant to rasterize.
        cancel_token: Checked before each pair.
        batch_size: Pairs between yielded frames.
        on_pair: Called with a BuildProgress after every pair.
        diagnostics: Receives a record for every unavailable glyph.

    Yields:
        BuildProgress frames.

    Returns:
        The assembled OverlapTable.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    letters = normalize_alphabet(alphabet)
    variant = GlyphVariant.parse(variant)
    total = len(letters) * len(letters)
    lookup = _GlyphLookup(glyph_provider, style, variant, diagnostics)

    entries: Dict[str, Dict[str, float]] = {}
    rotations: Dict[str, Dict[str, float]] = {}
    processed = 0
    cancelled = False
    started = time.perf_counter()

    logger.info("Building overlap table for %s: %d letters, %d pairs",
                style, len(letters), total)

    for a in letters:
        if cancelled:
            break
        first = lookup.get(a)
        for b in letters:
            if cancel_token is not None and cancel_token.cancelled:
                cancelled = True
                break

            if first is not None:
                second = lookup.get(b)
                if second is not None:
                    value = resolve_overlap(first, second, rules)
                    entries.setdefault(a, {})[b] = value
                    hint = resolve_rotation(a, b, rules)
                    if hint.second:
                        rotations.setdefault(b, {})[a] = hint.second

            processed += 1
            frame = BuildProgress(processed, total, (a, b))
            if on_pair is not None:
                on_pair(frame)
            if processed % batch_size == 0:
                yield frame

    entry_count = sum(len(row) for row in entries.values())
    complete = not cancelled and not lookup.skipped and entry_count == total
    metadata = TableMetadata(
        generated_at=datetime.now().isoformat(timespec='seconds'),
        total_pairs=entry_count,
        checksum=compute_checksum(entries, rotations),
        complete=complete,
        alphabet=''.join(letters),
        skipped=tuple(lookup.skipped),
        version=TABLE_FORMAT_VERSION,
    )

    if cancelled:
        logger.info("Build for %s cancelled after %d/%d pairs", style, processed, total)
    else:
        logger.info("Built overlap table for %s: %d entries in %.2fs (%d skipped letters)",
                    style, entry_count, time.perf_counter() - started, len(lookup.skipped))

    yield BuildProgress(processed, total, None)
    return OverlapTable(style=style, entries=entries, metadata=metadata, rotations=rotations)


def _consume(gen: Generator) -> OverlapTable:
    """Run a build generator to completion and return its table."""
    try:
        while True:
            next(gen)
    except StopIteration as e:
        return e.value


def build_table(
    alphabet,
    style: str,
    rules: RuleSet,
    glyph_provider,
    variant=GlyphVariant.STANDARD,
    progress: Optional[Callable[[BuildProgress], None]] = None,
    cancel_token: Optional[CancellationToken] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> OverlapTable:
    """Build a complete table in one call.

    Same arguments as ``iter_build_table``; ``progress`` is called after
    every pair with (processed, total, current_pair).
    """
    return _consume(iter_build_table(
        alphabet, style, rules, glyph_provider,
        variant=variant,
        cancel_token=cancel_token,
        on_pair=progress,
        diagnostics=diagnostics,
    ))


class TableBuildJob:
    """Build a table in a background thread.

    The job yields the GIL between batches so request threads stay
    responsive while it runs.

    Attributes:
        style: Style being built.
        progress: Latest BuildProgress (updated after every pair).
        result: The finished (or cancelled, partial) table, once done.
        error: Exception that aborted the build, if any.
    """

    def __init__(self, alphabet, style: str, rules: RuleSet, glyph_provider,
                 variant=GlyphVariant.STANDARD, batch_size: int = BUILD_BATCH_SIZE,
                 diagnostics: Optional[Diagnostics] = None,
                 on_complete: Optional[Callable[[OverlapTable], None]] = None):
        self.alphabet = alphabet
        self.style = style
        self.rules = rules
        self.glyph_provider = glyph_provider
        self.variant = variant
        self.batch_size = batch_size
        self.diagnostics = diagnostics
        self.on_complete = on_complete

        self.token = CancellationToken()
        self.progress: Optional[BuildProgress] = None
        self.result: Optional[OverlapTable] = None
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def _record(self, frame: BuildProgress) -> None:
        with self._lock:
            self.progress = frame

    def start(self) -> None:
        """Start the build in a daemon thread."""
        if self._thread and self._thread.is_alive():
            raise RuntimeError("Build already running")
        self._thread = threading.Thread(target=self._run, daemon=True,
                                        name=f'overlap-build-{self.style}')
        self._thread.start()

    def cancel(self) -> None:
        self.token.cancel()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> Optional[OverlapTable]:
        if self._thread is not None:
            self._thread.join(timeout)
        return self.result

    def _run(self) -> None:
        gen = iter_build_table(
            self.alphabet, self.style, self.rules, self.glyph_provider,
            variant=self.variant,
            cancel_token=self.token,
            batch_size=self.batch_size,
            on_pair=self._record,
            diagnostics=self.diagnostics,
        )
        try:
            while True:
                next(gen)
                time.sleep(0)
        except StopIteration as stop:
            self.result = stop.value
        except Exception as e:
            logger.exception("Overlap table build for %s failed", self.style)
            self.error = e
            return

        if self.on_complete is not None:
            self.on_complete(self.result)
