"""Explicit state for one page translation run."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum

from dualtrans.models.schemas import AUTO_LANG
from dualtrans.models.schemas import PageContext
from dualtrans.models.schemas import TranslateMode


class DisplayMode(str, Enum):
    """How a client renders translated items."""

    origin = "origin"
    translate = "translate"
    comparison = "comparison"


@dataclass
class TranslationSession:
    """Languages, display mode, progress and per-item results of a page.

    The orchestrator mutates the session while ``translating`` is set;
    ``cancel()`` takes effect before the next batch starts.
    """

    target_lang: str
    source_lang: str = AUTO_LANG
    display_mode: DisplayMode = DisplayMode.comparison
    context: PageContext | None = None
    api_keys: dict[str, str] = field(default_factory=dict)
    provider: str | None = None
    mode: TranslateMode | None = None

    translating: bool = False
    cancelled: bool = False
    batches_total: int = 0
    batches_done: int = 0
    results: dict[str | int, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def progress(self) -> float:
        if self.batches_total == 0:
            return 0.0
        return self.batches_done / self.batches_total

    def set_display_mode(self, mode: DisplayMode | str) -> None:
        self.display_mode = DisplayMode(mode)

    def cancel(self) -> None:
        if self.translating:
            self.cancelled = True

    # -- orchestrator hooks --

    def begin(self, batches_total: int) -> None:
        self.translating = True
        self.cancelled = False
        self.batches_total = batches_total
        self.batches_done = 0
        self.errors.clear()

    def record_batch(self, translations: dict[str | int, str]) -> None:
        self.results.update(translations)
        self.batches_done += 1

    def record_error(self, message: str) -> None:
        self.errors.append(message)
        self.batches_done += 1

    def finish(self) -> None:
        self.translating = False
