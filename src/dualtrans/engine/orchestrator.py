"""Translation orchestrator.

Ties language inference, the result cache, LLM providers, the free
racer, durable memory and the history log together. Cache and memory
failures degrade to "no cache" / "no memory" and are logged, never
raised; provider and racer failures propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from functools import partial
from time import perf_counter

from dualtrans.audit import HistoryEventType
from dualtrans.audit import HistoryLogger
from dualtrans.audit import TranslationRecord
from dualtrans.cache import ResultCache
from dualtrans.config import BatchConfig
from dualtrans.config import ProviderConfig
from dualtrans.config import RefineConfig
from dualtrans.engine.batching import BatchItem
from dualtrans.engine.batching import demux_numbered
from dualtrans.engine.batching import split_batches
from dualtrans.engine.context import ContextAnalyzer
from dualtrans.engine.prompt_builder import build_batch_messages
from dualtrans.engine.prompt_builder import build_refine_messages
from dualtrans.engine.prompt_builder import build_translation_messages
from dualtrans.engine.session import TranslationSession
from dualtrans.engine.summarizer import Summarizer
from dualtrans.errors import AllBackendsFailedError
from dualtrans.errors import InvalidRequestError
from dualtrans.errors import NoCredentialsError
from dualtrans.errors import TranslationError
from dualtrans.memory import build_memory_entry
from dualtrans.memory import TranslationMemoryStore
from dualtrans.models.fingerprint import fingerprint
from dualtrans.models.languages import DEFAULT_SOURCE_LANG
from dualtrans.models.languages import detect_language_heuristic
from dualtrans.models.languages import normalize_lang
from dualtrans.models.schemas import AUTO_LANG
from dualtrans.models.schemas import BatchResult
from dualtrans.models.schemas import CachedResult
from dualtrans.models.schemas import ChatOptions
from dualtrans.models.schemas import DualResult
from dualtrans.models.schemas import LLMHalf
from dualtrans.models.schemas import MachineHalf
from dualtrans.models.schemas import MemoryEntry
from dualtrans.models.schemas import PageContext
from dualtrans.models.schemas import RefineRequest
from dualtrans.models.schemas import RefineResult
from dualtrans.models.schemas import TranslateMode
from dualtrans.models.schemas import TranslationFragment
from dualtrans.models.schemas import TranslationResult
from dualtrans.providers.base import ChatProvider
from dualtrans.providers.free import FreeTranslationRacer
from dualtrans.providers.registry import build_provider
from dualtrans.providers.registry import has_credentials
from dualtrans.providers.registry import select_provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str, str], ChatProvider]

# Cache context type for machine results, so they never shadow LLM results.
MACHINE_CONTEXT_TYPE = "machine"
SAME_LANGUAGE_MODEL = "none"


@dataclass(frozen=True)
class TranslateOptions:
    """Per-call knobs shared by translate, dual and batch translation."""

    api_keys: dict[str, str] = field(default_factory=dict)
    provider: str | None = None
    model_id: str | None = None
    context: PageContext | None = None
    use_cache: bool = True
    use_memory: bool = True
    mode: TranslateMode | None = None


@dataclass(frozen=True)
class _Translated:
    text: str
    model: str
    tokens_used: int = 0
    cached: bool = False


class TranslationOrchestrator:
    """Entry point for every translation operation."""

    def __init__(
        self,
        *,
        racer: FreeTranslationRacer | None = None,
        cache: ResultCache | None = None,
        memory: TranslationMemoryStore | None = None,
        history: HistoryLogger | None = None,
        provider_factory: ProviderFactory | None = None,
        provider_config: ProviderConfig | None = None,
        batch_config: BatchConfig | None = None,
        refine_config: RefineConfig | None = None,
        network_detection: bool = True,
    ) -> None:
        self.provider_config = provider_config or ProviderConfig()
        self.batch_config = batch_config or BatchConfig()
        self.refine_config = refine_config or RefineConfig()
        self.racer = racer or FreeTranslationRacer()
        self.cache = cache
        self.memory = memory
        self.history = history
        self._provider_factory: ProviderFactory = provider_factory or partial(
            build_provider, config=self.provider_config
        )
        self._network_detection = network_detection
        self._pending_writes: set[asyncio.Task] = set()
        self.context_analyzer = ContextAnalyzer(self._provider_factory, cache)
        self.summarizer = Summarizer(
            self._provider_factory,
            self._translate_text,
            temperature=self.provider_config.translate_temperature,
            max_tokens=self.provider_config.min_max_tokens,
        )

    # ------------------------------------------------------------------
    # Language
    # ------------------------------------------------------------------

    async def infer_source_lang(self, text: str, source_lang: str | None = None) -> str:
        """Explicit language, else script heuristic, else network, else ``en``."""
        if source_lang and source_lang != AUTO_LANG:
            return normalize_lang(source_lang)
        detected = detect_language_heuristic(text)
        if detected is not None:
            return detected
        if self._network_detection:
            return await self.racer.detect_language(text)
        return DEFAULT_SOURCE_LANG

    async def detect_language(self, text: str) -> str:
        return await self.infer_source_lang(text)

    # ------------------------------------------------------------------
    # Single fragment
    # ------------------------------------------------------------------

    async def translate(
        self,
        fragment: TranslationFragment,
        options: TranslateOptions | None = None,
    ) -> TranslationResult:
        """Translate one fragment through the cache, then LLM or machine.

        ``mode`` defaults to ``llm`` when a credential is present and
        ``machine`` otherwise. An explicit ``llm``, or a named provider or
        model id, without a credential raises ``NoCredentialsError``.
        """
        options = options or TranslateOptions()
        start = perf_counter()
        resolved = await self._resolve_fragment(fragment)
        if resolved.source_lang == resolved.target_lang:
            result = self._unchanged(resolved)
        else:
            mode = self._resolve_mode(options)
            outcome = await self._translate_resolved(resolved, options, mode)
            result = TranslationResult(
                translated_text=outcome.text,
                source_lang=resolved.source_lang,
                target_lang=resolved.target_lang,
                model=outcome.model,
                cached=outcome.cached,
                tokens_used=outcome.tokens_used,
            )
        await self._record(
            HistoryEventType.TRANSLATE,
            source_text=fragment.text,
            target_lang=result.target_lang,
            model=result.model,
            tokens_used=result.tokens_used,
            cached=result.cached,
            start=start,
        )
        return result

    async def free_translate(
        self,
        text: str,
        target_lang: str,
        source_lang: str | None = None,
        *,
        use_cache: bool = True,
    ) -> TranslationResult:
        """Machine translation only; the racer picks the backend."""
        start = perf_counter()
        resolved = await self._resolve_fragment(
            TranslationFragment(
                text=text,
                source_lang=source_lang or AUTO_LANG,
                target_lang=target_lang,
            )
        )
        if resolved.source_lang == resolved.target_lang:
            result = self._unchanged(resolved)
        else:
            outcome = await self._translate_resolved(
                resolved,
                TranslateOptions(use_cache=use_cache, use_memory=False),
                TranslateMode.machine,
            )
            result = TranslationResult(
                translated_text=outcome.text,
                source_lang=resolved.source_lang,
                target_lang=resolved.target_lang,
                model=outcome.model,
                cached=outcome.cached,
            )
        await self._record(
            HistoryEventType.FREE_TRANSLATE,
            source_text=text,
            target_lang=result.target_lang,
            model=result.model,
            cached=result.cached,
            start=start,
        )
        return result

    async def _translate_text(
        self, text: str, target_lang: str, api_keys: dict[str, str]
    ) -> str:
        """Plain-text translation used by the summarizer; skips memory."""
        result = await self.translate(
            TranslationFragment(text=text, target_lang=target_lang),
            TranslateOptions(api_keys=api_keys, use_memory=False),
        )
        return result.translated_text

    async def dual_translate(
        self,
        fragment: TranslationFragment,
        options: TranslateOptions | None = None,
    ) -> DualResult:
        """Run the machine and LLM halves concurrently.

        Each half succeeds or fails on its own. Without a credential the
        LLM half is reported as unavailable and never attempted.
        """
        options = options or TranslateOptions()
        start = perf_counter()
        resolved = await self._resolve_fragment(fragment)
        llm_available = has_credentials(options.api_keys)

        if resolved.source_lang == resolved.target_lang:
            dual = DualResult(
                machine=MachineHalf(
                    translated_text=resolved.text, provider=SAME_LANGUAGE_MODEL
                ),
                llm=LLMHalf(
                    translated_text=resolved.text,
                    model=SAME_LANGUAGE_MODEL,
                    available=llm_available,
                ),
                source_lang=resolved.source_lang,
                target_lang=resolved.target_lang,
            )
        else:
            halves = [
                self._translate_resolved(resolved, options, TranslateMode.machine)
            ]
            if llm_available:
                halves.append(
                    self._translate_resolved(resolved, options, TranslateMode.llm)
                )
            outcomes = await asyncio.gather(*halves, return_exceptions=True)
            machine_outcome = outcomes[0]
            llm_outcome = outcomes[1] if llm_available else None

            machine = (
                MachineHalf(error=self._half_error("machine", machine_outcome))
                if isinstance(machine_outcome, BaseException)
                else MachineHalf(
                    translated_text=machine_outcome.text,
                    provider=machine_outcome.model,
                )
            )
            if llm_outcome is None:
                llm = LLMHalf(error=str(NoCredentialsError()), available=False)
            elif isinstance(llm_outcome, BaseException):
                llm = LLMHalf(
                    error=self._half_error("llm", llm_outcome), available=True
                )
            else:
                llm = LLMHalf(
                    translated_text=llm_outcome.text,
                    model=llm_outcome.model,
                    available=True,
                )
            dual = DualResult(
                machine=machine,
                llm=llm,
                source_lang=resolved.source_lang,
                target_lang=resolved.target_lang,
            )

        await self._record(
            HistoryEventType.DUAL_TRANSLATE,
            source_text=fragment.text,
            target_lang=dual.target_lang,
            model=dual.llm.model or dual.machine.provider,
            start=start,
        )
        return dual

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def batch_translate(
        self,
        texts: Sequence[str],
        target_lang: str,
        options: TranslateOptions | None = None,
        *,
        source_lang: str | None = None,
    ) -> BatchResult:
        """Translate many texts with one provider call per batch.

        Cache hits are served first; identical misses are translated once.
        A text whose ``[k]`` marker is missing from the answer comes back
        as its own source text and is not cached.
        """
        options = options or TranslateOptions()
        start = perf_counter()
        texts = list(texts)
        if not texts:
            raise InvalidRequestError("texts must not be empty")
        limit = self.batch_config.max_request_texts
        if len(texts) > limit:
            raise InvalidRequestError(
                f"Too many texts: {len(texts)} (maximum {limit} per request)"
            )

        sample = next((t for t in texts if t.strip()), texts[0])
        source = await self.infer_source_lang(sample, source_lang)
        target = normalize_lang(target_lang)
        if source == target:
            result = BatchResult(
                translations=texts,
                source_lang=source,
                target_lang=target,
                model=SAME_LANGUAGE_MODEL,
            )
        else:
            result = await self._batch_translate_resolved(
                texts, source, target, options
            )

        await self._record(
            HistoryEventType.BATCH_TRANSLATE,
            source_text=" ".join(texts),
            target_lang=target,
            model=result.model,
            tokens_used=result.tokens_used,
            cached=result.cached_count == len(texts),
            start=start,
        )
        return result

    async def _batch_translate_resolved(
        self,
        texts: list[str],
        source: str,
        target: str,
        options: TranslateOptions,
    ) -> BatchResult:
        mode = self._resolve_mode(options)
        context_type = self._context_type_for(mode, None, options.context)
        fps = [fingerprint(t, source, target, context_type) for t in texts]

        hits = await self._cache_batch_get(fps) if options.use_cache else {}
        done: dict[str, str] = {fp: hit.translated_text for fp, hit in hits.items()}
        misses: dict[str, str] = {}
        for fp, text in zip(fps, texts):
            if fp in done or fp in misses or not text.strip():
                continue
            misses[fp] = text

        model = next(iter(hits.values())).model if hits else mode.value
        tokens_used = 0
        if misses:
            if mode is TranslateMode.machine:
                translated, model = await self._machine_batch(misses, source, target)
            else:
                translated, model, tokens_used = await self._llm_batch(
                    misses, source, target, options
                )
            for fp, text in translated.items():
                done[fp] = text
                if options.use_cache:
                    await self._cache_set(
                        fp,
                        CachedResult(
                            translated_text=text,
                            source_lang=source,
                            target_lang=target,
                            model=model,
                        ),
                    )

        return BatchResult(
            translations=[done.get(fp, text) for fp, text in zip(fps, texts)],
            source_lang=source,
            target_lang=target,
            model=model,
            cached_count=sum(1 for fp in fps if fp in hits),
            tokens_used=tokens_used,
        )

    async def _llm_batch(
        self,
        misses: dict[str, str],
        source: str,
        target: str,
        options: TranslateOptions,
    ) -> tuple[dict[str, str], str, int]:
        name, key = select_provider(options.api_keys, options.provider)
        provider = self._provider_factory(name, key)
        items = [BatchItem(id=fp, text=text) for fp, text in misses.items()]
        translated: dict[str, str] = {}
        model = name
        tokens_used = 0
        for batch in split_batches(
            items, self.batch_config.max_items, self.batch_config.max_chars
        ):
            batch_texts = [item.text for item in batch]
            response = await provider.chat(
                build_batch_messages(batch_texts, source, target, options.context),
                ChatOptions(
                    temperature=self.provider_config.translate_temperature,
                    max_tokens=self._max_tokens_for(sum(map(len, batch_texts))),
                    model=self._model_id_for(name, options.provider, options.model_id),
                ),
            )
            model = response.model
            tokens_used += response.tokens_used.total
            parts = demux_numbered(response.content, len(batch))
            missing = 0
            for item, part in zip(batch, parts):
                if part is None:
                    missing += 1
                    continue
                translated[str(item.id)] = part
            if missing:
                logger.warning(
                    "Batch answer from %s lacked %d of %d markers",
                    name,
                    missing,
                    len(batch),
                )
        return translated, model, tokens_used

    async def _machine_batch(
        self, misses: dict[str, str], source: str, target: str
    ) -> tuple[dict[str, str], str]:
        outcomes = await asyncio.gather(
            *(self.racer.translate(text, target, source) for text in misses.values()),
            return_exceptions=True,
        )
        translated: dict[str, str] = {}
        for fp, outcome in zip(misses, outcomes):
            if isinstance(outcome, AllBackendsFailedError):
                logger.warning("Machine translation failed in batch: %s", outcome)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            translated[fp] = outcome.translated_text
        return translated, TranslateMode.machine.value

    # ------------------------------------------------------------------
    # Refinement
    # ------------------------------------------------------------------

    async def refine(self, request: RefineRequest) -> RefineResult:
        """Adjust an existing translation following a user instruction."""
        start = perf_counter()
        source = await self.infer_source_lang(
            request.original_text, request.source_lang
        )
        name, key = select_provider(request.api_keys, request.model)
        provider = self._provider_factory(name, key)
        messages = build_refine_messages(
            original_text=request.original_text,
            current_translation=request.current_translation,
            instruction=request.instruction,
            history=request.history,
            source_lang=source,
            target_lang=normalize_lang(request.target_lang),
            history_limit=self.refine_config.history_limit,
        )
        response = await provider.chat(
            messages,
            ChatOptions(
                temperature=self.provider_config.refine_temperature,
                max_tokens=self._max_tokens_for(len(request.current_translation)),
                model=self._model_id_for(name, request.model, request.model_id),
            ),
        )
        result = RefineResult(
            refined_text=response.content.strip(), model=response.model
        )
        await self._record(
            HistoryEventType.REFINE,
            source_text=request.original_text,
            target_lang=request.target_lang,
            model=result.model,
            tokens_used=response.tokens_used.total,
            start=start,
        )
        return result

    # ------------------------------------------------------------------
    # Page translation
    # ------------------------------------------------------------------

    async def translate_page(
        self,
        session: TranslationSession,
        items: Sequence[BatchItem],
    ) -> TranslationSession:
        """Translate a page's items batch by batch into *session*.

        Stops between batches once ``session.cancel()`` was called. A failed
        batch leaves its items untranslated and records the error.
        """
        if session.translating:
            raise InvalidRequestError("Session is already translating")
        batches = split_batches(
            [item for item in items if item.text.strip()],
            self.batch_config.max_request_texts,
            self.batch_config.max_chars,
        )
        session.begin(len(batches))
        options = TranslateOptions(
            api_keys=session.api_keys,
            provider=session.provider,
            context=session.context,
            mode=session.mode,
        )
        try:
            for batch in batches:
                if session.cancelled:
                    logger.info(
                        "Page translation cancelled after %d of %d batches",
                        session.batches_done,
                        session.batches_total,
                    )
                    break
                try:
                    result = await self.batch_translate(
                        [item.text for item in batch],
                        session.target_lang,
                        options,
                        source_lang=session.source_lang,
                    )
                except TranslationError as exc:
                    logger.warning("Page batch failed: %s", exc)
                    session.record_error(str(exc))
                else:
                    session.record_batch(
                        dict(zip((item.id for item in batch), result.translations))
                    )
        finally:
            session.finish()
        return session

    # ------------------------------------------------------------------
    # Background memory writes
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait for every scheduled memory write to finish."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    def _schedule_memory_write(self, entry: MemoryEntry) -> None:
        task = asyncio.create_task(self._save_memory(entry))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _save_memory(self, entry: MemoryEntry) -> None:
        if self.memory is None:
            return
        try:
            await self.memory.save(entry)
        except Exception:
            logger.exception("Failed to save translation memory")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _resolve_fragment(
        self, fragment: TranslationFragment
    ) -> TranslationFragment:
        source = await self.infer_source_lang(fragment.text, fragment.source_lang)
        return fragment.model_copy(
            update={
                "source_lang": source,
                "target_lang": normalize_lang(fragment.target_lang),
            }
        )

    @staticmethod
    def _unchanged(fragment: TranslationFragment) -> TranslationResult:
        return TranslationResult(
            translated_text=fragment.text,
            source_lang=fragment.source_lang,
            target_lang=fragment.target_lang,
            model=SAME_LANGUAGE_MODEL,
        )

    @staticmethod
    def _resolve_mode(options: TranslateOptions) -> TranslateMode:
        """Explicit mode, else ``llm`` when a key is present.

        Naming a provider or vendor model is an LLM request, so it needs a
        credential just like ``mode="llm"``.
        """
        credentialed = has_credentials(options.api_keys)
        mode = options.mode
        if mode is None and (options.provider or options.model_id):
            mode = TranslateMode.llm
        if mode is None:
            return TranslateMode.llm if credentialed else TranslateMode.machine
        if mode is TranslateMode.llm and not credentialed:
            raise NoCredentialsError()
        return mode

    @staticmethod
    def _model_id_for(
        selected: str, requested: str | None, model_id: str | None
    ) -> str | None:
        """Vendor model id, dropped when selection fell back to another vendor."""
        if requested is not None and requested != selected:
            return None
        return model_id

    @staticmethod
    def _context_type_for(
        mode: TranslateMode,
        fragment_context_type: str | None,
        context: PageContext | None,
    ) -> str | None:
        if mode is TranslateMode.machine:
            return MACHINE_CONTEXT_TYPE
        if fragment_context_type:
            return fragment_context_type
        return context.type.value if context is not None else None

    def _max_tokens_for(self, char_count: int) -> int:
        return max(char_count * 3, self.provider_config.min_max_tokens)

    async def _translate_resolved(
        self,
        fragment: TranslationFragment,
        options: TranslateOptions,
        mode: TranslateMode,
    ) -> _Translated:
        """Cache lookup, translator call, cache write and memory write.

        *fragment* already carries concrete source and target languages.
        """
        keyed = fragment.model_copy(
            update={
                "context_type": self._context_type_for(
                    mode, fragment.context_type, options.context
                )
            }
        )
        fp = keyed.fingerprint
        if options.use_cache:
            hit = await self._cache_get(fp)
            if hit is not None:
                return _Translated(
                    text=hit.translated_text, model=hit.model, cached=True
                )

        if mode is TranslateMode.machine:
            free = await self.racer.translate(
                keyed.text, keyed.target_lang, keyed.source_lang
            )
            outcome = _Translated(text=free.translated_text, model=free.provider)
        else:
            outcome = await self._llm_translate(keyed, options)

        if outcome.text and options.use_cache:
            await self._cache_set(
                fp,
                CachedResult(
                    translated_text=outcome.text,
                    source_lang=keyed.source_lang,
                    target_lang=keyed.target_lang,
                    model=outcome.model,
                ),
            )
        if (
            outcome.text
            and options.use_memory
            and mode is TranslateMode.llm
            and self.memory is not None
        ):
            self._schedule_memory_write(
                build_memory_entry(
                    source_text=keyed.text,
                    target_text=outcome.text,
                    source_lang=keyed.source_lang,
                    target_lang=keyed.target_lang,
                    context_type=keyed.context_type,
                    model_used=outcome.model,
                )
            )
        return outcome

    async def _llm_translate(
        self, fragment: TranslationFragment, options: TranslateOptions
    ) -> _Translated:
        name, key = select_provider(options.api_keys, options.provider)
        provider = self._provider_factory(name, key)
        response = await provider.chat(
            build_translation_messages(
                fragment.text,
                fragment.source_lang,
                fragment.target_lang,
                options.context,
            ),
            ChatOptions(
                temperature=self.provider_config.translate_temperature,
                max_tokens=self._max_tokens_for(len(fragment.text)),
                model=self._model_id_for(name, options.provider, options.model_id),
            ),
        )
        return _Translated(
            text=response.content.strip(),
            model=response.model,
            tokens_used=response.tokens_used.total,
        )

    @staticmethod
    def _half_error(half: str, exc: BaseException) -> str:
        if not isinstance(exc, Exception):
            raise exc
        if not isinstance(exc, TranslationError):
            logger.error("Unexpected %s half failure", half, exc_info=exc)
        return str(exc) or type(exc).__name__

    async def _cache_get(self, fp: str) -> CachedResult | None:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(fp)
        except Exception:
            logger.exception("Cache read failed for %s", fp)
            return None

    async def _cache_batch_get(self, fps: list[str]) -> dict[str, CachedResult]:
        if self.cache is None:
            return {}
        try:
            return await self.cache.batch_get(fps)
        except Exception:
            logger.exception("Cache batch read failed")
            return {}

    async def _cache_set(self, fp: str, result: CachedResult) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(fp, result)
        except Exception:
            logger.exception("Cache write failed for %s", fp)

    async def _record(
        self,
        event_type: HistoryEventType,
        *,
        source_text: str,
        target_lang: str,
        model: str | None,
        start: float,
        tokens_used: int = 0,
        cached: bool = False,
    ) -> None:
        if self.history is None:
            return
        await self.history.record(
            event_type,
            TranslationRecord.of(
                source_text,
                target_lang=target_lang,
                model=model,
                tokens_used=tokens_used,
                cached=cached,
                processing_time_ms=(perf_counter() - start) * 1000,
            ),
        )
