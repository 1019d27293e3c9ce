"""DualTrans: FastMCP v2 server with translation tools and HTTP routes.

MCP tools and HTTP routes are thin wrappers around a single
``TranslationOrchestrator``. Call ``configure(...)`` before use.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable
from collections.abc import Callable
from time import perf_counter
from typing import Any

from dotenv import load_dotenv
from fastmcp import FastMCP
from neo4j import AsyncDriver
from neo4j import AsyncGraphDatabase
from pydantic import BaseModel
from pydantic import ValidationError
from redis.asyncio import Redis  # type: ignore[import-untyped]
from starlette.requests import Request
from starlette.responses import JSONResponse

from dualtrans.audit import HistoryEventType
from dualtrans.audit import HistoryLogger
from dualtrans.cache import ResultCache
from dualtrans.config import AuditConfig
from dualtrans.config import BatchConfig
from dualtrans.config import CacheConfig
from dualtrans.config import ProviderConfig
from dualtrans.config import RacerConfig
from dualtrans.config import RefineConfig
from dualtrans.engine import TranslateOptions
from dualtrans.engine import TranslationOrchestrator
from dualtrans.engine.context import quick_context_detection
from dualtrans.errors import AllBackendsFailedError
from dualtrans.errors import InvalidRequestError
from dualtrans.errors import NoCredentialsError
from dualtrans.errors import ProviderError
from dualtrans.errors import TranslationError
from dualtrans.memory import build_memory_entry
from dualtrans.memory import init_schema
from dualtrans.memory import TranslationMemoryStore
from dualtrans.models.schemas import BatchTranslateRequest
from dualtrans.models.schemas import ContextAnalyzeRequest
from dualtrans.models.schemas import DetectRequest
from dualtrans.models.schemas import DocumentSummaryRequest
from dualtrans.models.schemas import MemoryCreateRequest
from dualtrans.models.schemas import MemoryExportRequest
from dualtrans.models.schemas import ProgressiveSummaryRequest
from dualtrans.models.schemas import QualityUpdateRequest
from dualtrans.models.schemas import QuickContextRequest
from dualtrans.models.schemas import RefineRequest
from dualtrans.models.schemas import SummaryRequest
from dualtrans.models.schemas import TranslateRequest
from dualtrans.models.schemas import TranslationFragment
from dualtrans.observability import latency_metrics_snapshot
from dualtrans.observability import race_winner_snapshot
from dualtrans.observability import record_latency
from dualtrans.providers.base import ChatProvider
from dualtrans.providers.free import FreeTranslationRacer
from dualtrans.providers.registry import list_providers as catalog_providers

logger = logging.getLogger(__name__)

mcp = FastMCP("DualTrans")

# ---------------------------------------------------------------------------
# Orchestrator instance (set via configure())
# ---------------------------------------------------------------------------

_orchestrator: TranslationOrchestrator | None = None
_graph_driver: AsyncDriver | None = None


async def configure(
    redis_url: str | None = None,
    neo4j_url: str | None = None,
    *,
    cache: ResultCache | None = None,
    memory: TranslationMemoryStore | None = None,
    racer: FreeTranslationRacer | None = None,
    provider_factory: Callable[[str, str], ChatProvider] | None = None,
    cache_config: CacheConfig | None = None,
    provider_config: ProviderConfig | None = None,
    racer_config: RacerConfig | None = None,
    batch_config: BatchConfig | None = None,
    refine_config: RefineConfig | None = None,
    audit_config: AuditConfig | None = None,
    network_detection: bool = True,
) -> TranslationOrchestrator:
    """Build the orchestrator and its backends.

    Explicit *cache* / *memory* objects win over the URLs. Without either,
    the server runs with no result cache or no durable memory.
    """
    global _orchestrator, _graph_driver
    await shutdown()

    if cache is None and redis_url is not None:
        cache = ResultCache(Redis.from_url(redis_url), cache_config)
    if memory is None and neo4j_url is not None:
        _graph_driver = AsyncGraphDatabase.driver(neo4j_url)
        await init_schema(_graph_driver)
        memory = TranslationMemoryStore(_graph_driver)

    _orchestrator = TranslationOrchestrator(
        racer=racer or FreeTranslationRacer(config=racer_config),
        cache=cache,
        memory=memory,
        history=HistoryLogger(audit_config or AuditConfig()),
        provider_factory=provider_factory,
        provider_config=provider_config,
        batch_config=batch_config,
        refine_config=refine_config,
        network_detection=network_detection,
    )
    return _orchestrator


async def shutdown() -> None:
    """Flush pending memory writes and close backend clients."""
    global _orchestrator, _graph_driver
    if _orchestrator is not None:
        await _orchestrator.drain()
        if _orchestrator.cache is not None:
            try:
                await _orchestrator.cache.close()
            except RuntimeError:
                # Tests may reconfigure across event loops.
                pass
        _orchestrator = None
    if _graph_driver is not None:
        try:
            await _graph_driver.close()
        except RuntimeError:
            pass
        _graph_driver = None


def _get_orchestrator() -> TranslationOrchestrator:
    if _orchestrator is None:
        raise RuntimeError("Server not configured. Call configure() first.")
    return _orchestrator


def _get_history() -> HistoryLogger:
    history = _get_orchestrator().history
    if history is None:
        raise RuntimeError("Translation history is not configured")
    return history


def _get_memory() -> TranslationMemoryStore:
    memory = _get_orchestrator().memory
    if memory is None:
        raise _MemoryUnavailable()
    return memory


class _MemoryUnavailable(TranslationError):
    code = "memory_unavailable"

    def __init__(self) -> None:
        super().__init__("Translation memory is not configured")


def _options_from(
    request: TranslateRequest | BatchTranslateRequest,
) -> TranslateOptions:
    return TranslateOptions(
        api_keys=request.api_keys,
        provider=request.model,
        model_id=request.model_id,
        context=request.context,
        use_cache=request.use_cache,
        use_memory=getattr(request, "use_memory", True),
        mode=getattr(request, "mode", None),
    )


def _fragment_from(request: TranslateRequest) -> TranslationFragment:
    return TranslationFragment(
        text=request.text,
        source_lang=request.source_lang or "auto",
        target_lang=request.target_lang,
        context_type=request.context.type.value if request.context else None,
    )


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(part) for part in err.get("loc", ()))
    msg = str(err.get("msg", "Invalid input"))
    return f"{loc}: {msg}" if loc else msg


# ---------------------------------------------------------------------------
# HTTP envelope
# ---------------------------------------------------------------------------


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def _ok(data: Any, *, meta: dict | None = None, status_code: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"success": True, "data": _dump(data)}
    if meta is not None:
        body["meta"] = meta
    return JSONResponse(body, status_code=status_code)


def _fail(message: str, code: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": message, "code": code},
        status_code=status_code,
    )


def _status_for(exc: TranslationError) -> int:
    if isinstance(exc, (InvalidRequestError, NoCredentialsError)):
        return 400
    if isinstance(exc, (ProviderError, AllBackendsFailedError)):
        return 502
    if isinstance(exc, _MemoryUnavailable):
        return 503
    return 500


async def _body(request: Request, model: type[BaseModel]) -> Any:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise InvalidRequestError("Request body must be valid JSON") from exc
    return model.model_validate(payload)


async def _handle(
    operation: str, handler: Callable[[], Awaitable[JSONResponse]]
) -> JSONResponse:
    """Run *handler*, map domain errors to the envelope, record latency."""
    start = perf_counter()
    ok = False
    try:
        response = await handler()
        ok = response.status_code < 400
        return response
    except ValidationError as exc:
        return _fail(_validation_message(exc), "validation_error", 400)
    except TranslationError as exc:
        status = _status_for(exc)
        if status >= 500:
            logger.warning("%s failed: %s", operation, exc)
        return _fail(str(exc), exc.code, status)
    finally:
        record_latency(
            operation=f"http.{operation}",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


def _elapsed_ms(start: float) -> int:
    return int((perf_counter() - start) * 1000)


# ---------------------------------------------------------------------------
# HTTP routes: translation
# ---------------------------------------------------------------------------


@mcp.custom_route("/", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    return JSONResponse({"name": "DualTrans", "status": "ok"})


@mcp.custom_route("/translate", methods=["POST"])
async def translate_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        start = perf_counter()
        body: TranslateRequest = await _body(request, TranslateRequest)
        result = await _get_orchestrator().translate(
            _fragment_from(body), _options_from(body)
        )
        return _ok(
            result,
            meta={
                "cached": result.cached,
                "model": result.model,
                "tokensUsed": result.tokens_used,
                "processingTime": _elapsed_ms(start),
            },
        )

    return await _handle("translate", run)


@mcp.custom_route("/translate/dual", methods=["POST"])
async def dual_translate_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        start = perf_counter()
        body: TranslateRequest = await _body(request, TranslateRequest)
        result = await _get_orchestrator().dual_translate(
            _fragment_from(body), _options_from(body)
        )
        return _ok(result, meta={"processingTime": _elapsed_ms(start)})

    return await _handle("translate_dual", run)


@mcp.custom_route("/translate/batch", methods=["POST"])
async def batch_translate_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        start = perf_counter()
        body: BatchTranslateRequest = await _body(request, BatchTranslateRequest)
        result = await _get_orchestrator().batch_translate(
            body.texts,
            body.target_lang,
            _options_from(body),
            source_lang=body.source_lang,
        )
        return _ok(
            result,
            meta={
                "cachedCount": result.cached_count,
                "model": result.model,
                "tokensUsed": result.tokens_used,
                "processingTime": _elapsed_ms(start),
            },
        )

    return await _handle("translate_batch", run)


@mcp.custom_route("/translate/free", methods=["POST"])
async def free_translate_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        start = perf_counter()
        body: TranslateRequest = await _body(request, TranslateRequest)
        result = await _get_orchestrator().free_translate(
            body.text,
            body.target_lang,
            body.source_lang,
            use_cache=body.use_cache,
        )
        return _ok(
            {
                "translatedText": result.translated_text,
                "sourceLang": result.source_lang,
                "targetLang": result.target_lang,
                "provider": result.model,
                "cached": result.cached,
            },
            meta={"processingTime": _elapsed_ms(start)},
        )

    return await _handle("translate_free", run)


@mcp.custom_route("/translate/detect", methods=["POST"])
async def detect_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        body: DetectRequest = await _body(request, DetectRequest)
        language = await _get_orchestrator().detect_language(body.text)
        return _ok({"language": language})

    return await _handle("translate_detect", run)


@mcp.custom_route("/translate/providers", methods=["GET"])
async def providers_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        return _ok(catalog_providers())

    return await _handle("translate_providers", run)


@mcp.custom_route("/translate/refine", methods=["POST"])
async def refine_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        start = perf_counter()
        body: RefineRequest = await _body(request, RefineRequest)
        result = await _get_orchestrator().refine(body)
        return _ok(result, meta={"processingTime": _elapsed_ms(start)})

    return await _handle("translate_refine", run)


@mcp.custom_route("/context/analyze", methods=["POST"])
async def context_analyze_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        body: ContextAnalyzeRequest = await _body(request, ContextAnalyzeRequest)
        analysis = await _get_orchestrator().context_analyzer.analyze(
            body.content, body.api_keys, url=body.url, title=body.title
        )
        return _ok(analysis)

    return await _handle("context_analyze", run)


@mcp.custom_route("/context/quick", methods=["POST"])
async def context_quick_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        body: QuickContextRequest = await _body(request, QuickContextRequest)
        if not body.url and not body.title:
            raise InvalidRequestError("At least one of url or title is required")
        return _ok(quick_context_detection(body.url, body.title))

    return await _handle("context_quick", run)


# ---------------------------------------------------------------------------
# HTTP routes: summaries
# ---------------------------------------------------------------------------


@mcp.custom_route("/summary", methods=["POST"])
async def summary_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        start = perf_counter()
        body: SummaryRequest = await _body(request, SummaryRequest)
        result = await _get_orchestrator().summarizer.summarize_text(
            body.text,
            body.api_keys,
            target_lang=body.target_lang,
            max_length=body.max_length,
            include_key_points=body.include_key_points,
            include_sections=body.include_sections,
            provider=body.model,
        )
        return _ok(result, meta={"processingTime": _elapsed_ms(start)})

    return await _handle("summary", run)


@mcp.custom_route("/summary/document", methods=["POST"])
async def summary_document_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        start = perf_counter()
        body: DocumentSummaryRequest = await _body(request, DocumentSummaryRequest)
        result = await _get_orchestrator().summarizer.summarize_document(
            body.title,
            body.content,
            body.api_keys,
            target_lang=body.target_lang,
            provider=body.model,
        )
        return _ok(result, meta={"processingTime": _elapsed_ms(start)})

    return await _handle("summary_document", run)


@mcp.custom_route("/summary/progressive", methods=["POST"])
async def summary_progressive_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        start = perf_counter()
        body: ProgressiveSummaryRequest = await _body(
            request, ProgressiveSummaryRequest
        )
        result = await _get_orchestrator().summarizer.progressive_summarize(
            body.content,
            body.api_keys,
            target_lang=body.target_lang,
            provider=body.model,
        )
        return _ok(result, meta={"processingTime": _elapsed_ms(start)})

    return await _handle("summary_progressive", run)


@mcp.custom_route("/metrics", methods=["GET"])
async def metrics_route(request: Request) -> JSONResponse:
    return _ok(
        {
            "latency": latency_metrics_snapshot(),
            "raceWinners": race_winner_snapshot(),
        }
    )


# ---------------------------------------------------------------------------
# HTTP routes: translation memory
# ---------------------------------------------------------------------------


def _int_param(request: Request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidRequestError(f"{name} must be an integer") from exc


@mcp.custom_route("/memory", methods=["GET"])
async def memory_list_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        limit = _int_param(request, "limit", 50)
        offset = _int_param(request, "offset", 0)
        entries = await _get_memory().list_entries(
            source_lang=request.query_params.get("sourceLang"),
            target_lang=request.query_params.get("targetLang"),
            limit=limit,
            offset=offset,
        )
        return _ok(entries, meta={"limit": limit, "offset": offset})

    return await _handle("memory_list", run)


@mcp.custom_route("/memory/search", methods=["GET"])
async def memory_search_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        text = request.query_params.get("text")
        if not text:
            raise InvalidRequestError("Missing required query parameter: text")
        entry = await _get_memory().search(
            text,
            source_lang=request.query_params.get("sourceLang"),
            target_lang=request.query_params.get("targetLang"),
        )
        return _ok(entry)

    return await _handle("memory_search", run)


@mcp.custom_route("/memory", methods=["POST"])
async def memory_create_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        body: MemoryCreateRequest = await _body(request, MemoryCreateRequest)
        entry = await _get_memory().save(
            build_memory_entry(
                source_text=body.source_text,
                target_text=body.target_text,
                source_lang=body.source_lang,
                target_lang=body.target_lang,
                context_type=body.context_type,
                model_used=body.model_used,
            )
        )
        return _ok(entry, status_code=201)

    return await _handle("memory_create", run)


@mcp.custom_route("/memory/stats", methods=["GET"])
async def memory_stats_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        return _ok(await _get_memory().stats())

    return await _handle("memory_stats", run)


@mcp.custom_route("/memory/export", methods=["POST"])
async def memory_export_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        body: MemoryExportRequest = await _body(request, MemoryExportRequest)
        rows = await _get_memory().export(
            source_lang=body.source_lang, target_lang=body.target_lang
        )
        return _ok(rows, meta={"count": len(rows)})

    return await _handle("memory_export", run)


@mcp.custom_route("/memory/{entry_id}/quality", methods=["PUT"])
async def memory_quality_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        body: QualityUpdateRequest = await _body(request, QualityUpdateRequest)
        entry_id = request.path_params["entry_id"]
        entry = await _get_memory().update_quality(entry_id, body.score)
        if entry is None:
            return _fail(f"Memory entry {entry_id} not found", "not_found", 404)
        return _ok(entry)

    return await _handle("memory_quality", run)


@mcp.custom_route("/memory/{entry_id}", methods=["DELETE"])
async def memory_delete_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        entry_id = request.path_params["entry_id"]
        if not await _get_memory().delete(entry_id):
            return _fail(f"Memory entry {entry_id} not found", "not_found", 404)
        return _ok({"deleted": entry_id})

    return await _handle("memory_delete", run)


# ---------------------------------------------------------------------------
# HTTP routes: translation history
# ---------------------------------------------------------------------------


def _float_param(request: Request, name: str) -> float | None:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidRequestError(f"{name} must be a number") from exc


def _event_type_param(request: Request) -> HistoryEventType | None:
    raw = request.query_params.get("eventType")
    if not raw:
        return None
    try:
        return HistoryEventType(raw.upper())
    except ValueError as exc:
        raise InvalidRequestError(f"Unknown eventType '{raw}'") from exc


@mcp.custom_route("/history", methods=["GET"])
async def history_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        limit = _int_param(request, "limit", 100)
        events = await _get_history().read_events(
            event_type=_event_type_param(request),
            since=_float_param(request, "since"),
            model=request.query_params.get("model"),
            target_lang=request.query_params.get("targetLang"),
            limit=limit,
        )
        return _ok(events, meta={"count": len(events), "limit": limit})

    return await _handle("history", run)


@mcp.custom_route("/history/usage", methods=["GET"])
async def history_usage_route(request: Request) -> JSONResponse:
    async def run() -> JSONResponse:
        return _ok(
            await _get_history().usage(since=_float_param(request, "since"))
        )

    return await _handle("history_usage", run)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


def _tool_ok(data: Any) -> dict[str, Any]:
    return {"status": "ok", "data": _dump(data)}


def _tool_error(error_code: str, message: str) -> dict[str, Any]:
    return {"status": "error", "error_code": error_code, "message": message}


async def _run_tool(
    operation: str, handler: Callable[[], Awaitable[Any]]
) -> dict[str, Any]:
    start = perf_counter()
    ok = False
    try:
        data = await handler()
        ok = True
        return _tool_ok(data)
    except ValidationError as exc:
        return _tool_error("validation_error", _validation_message(exc))
    except TranslationError as exc:
        return _tool_error(exc.code, str(exc))
    finally:
        record_latency(
            operation=f"mcp.{operation}",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def translate(
    text: str,
    target_lang: str,
    source_lang: str | None = None,
    context: dict | None = None,
    model: str | None = None,
    model_id: str | None = None,
    api_keys: dict[str, str] | None = None,
    use_cache: bool = True,
    use_memory: bool = True,
    mode: str | None = None,
) -> dict[str, Any]:
    """Translate one text with an LLM, or machine translation without a key.

    Args:
        text: Text to translate.
        target_lang: Target language code (e.g. "zh", "en").
        source_lang: Source language code; detected when omitted.
        context: Optional page context (type, domain, tone, terminologyHints).
        model: Preferred provider name (e.g. "claude", "openai").
        model_id: Vendor model id overriding the provider default.
        api_keys: Provider name -> API key.
        use_cache: Read and write the result cache.
        use_memory: Save the translation to durable memory.
        mode: "llm" or "machine"; defaults to llm when a key is present.
    """

    async def run() -> Any:
        request = TranslateRequest.model_validate(
            {
                "text": text,
                "target_lang": target_lang,
                "source_lang": source_lang,
                "context": context,
                "model": model,
                "model_id": model_id,
                "api_keys": api_keys or {},
                "use_cache": use_cache,
                "use_memory": use_memory,
                "mode": mode,
            }
        )
        return await _get_orchestrator().translate(
            _fragment_from(request), _options_from(request)
        )

    return await _run_tool("translate", run)


@mcp.tool
async def dual_translate(
    text: str,
    target_lang: str,
    source_lang: str | None = None,
    context: dict | None = None,
    model: str | None = None,
    api_keys: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Machine and LLM translations of the same text, side by side.

    Each half reports its own error; the LLM half is marked unavailable
    when no API key is given.
    """

    async def run() -> Any:
        request = TranslateRequest.model_validate(
            {
                "text": text,
                "target_lang": target_lang,
                "source_lang": source_lang,
                "context": context,
                "model": model,
                "api_keys": api_keys or {},
            }
        )
        return await _get_orchestrator().dual_translate(
            _fragment_from(request), _options_from(request)
        )

    return await _run_tool("dual_translate", run)


@mcp.tool
async def batch_translate(
    texts: list[str],
    target_lang: str,
    source_lang: str | None = None,
    context: dict | None = None,
    model: str | None = None,
    api_keys: dict[str, str] | None = None,
    use_cache: bool = True,
) -> dict[str, Any]:
    """Translate up to 50 texts, returned in input order."""

    async def run() -> Any:
        request = BatchTranslateRequest.model_validate(
            {
                "texts": texts,
                "target_lang": target_lang,
                "source_lang": source_lang,
                "context": context,
                "model": model,
                "api_keys": api_keys or {},
                "use_cache": use_cache,
            }
        )
        return await _get_orchestrator().batch_translate(
            request.texts,
            request.target_lang,
            _options_from(request),
            source_lang=request.source_lang,
        )

    return await _run_tool("batch_translate", run)


@mcp.tool
async def free_translate(
    text: str,
    target_lang: str,
    source_lang: str | None = None,
) -> dict[str, Any]:
    """Keyless machine translation; the fastest free backend wins."""

    async def run() -> Any:
        if not text or not target_lang:
            raise InvalidRequestError("text and target_lang are required")
        return await _get_orchestrator().free_translate(text, target_lang, source_lang)

    return await _run_tool("free_translate", run)


@mcp.tool
async def detect_language(text: str) -> dict[str, Any]:
    """Detect the language of *text* (ISO 639-1 code)."""

    async def run() -> Any:
        request = DetectRequest.model_validate({"text": text})
        return {"language": await _get_orchestrator().detect_language(request.text)}

    return await _run_tool("detect_language", run)


@mcp.tool
async def list_providers() -> dict[str, Any]:
    """Supported LLM providers and their models."""

    async def run() -> Any:
        return catalog_providers()

    return await _run_tool("list_providers", run)


@mcp.tool
async def refine_translation(
    original_text: str,
    current_translation: str,
    instruction: str,
    target_lang: str,
    source_lang: str | None = None,
    history: list[dict] | None = None,
    model: str | None = None,
    api_keys: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Adjust a translation following a natural-language instruction.

    Args:
        history: Earlier ``{role, content}`` turns of this refinement.
    """

    async def run() -> Any:
        request = RefineRequest.model_validate(
            {
                "original_text": original_text,
                "current_translation": current_translation,
                "instruction": instruction,
                "target_lang": target_lang,
                "source_lang": source_lang,
                "history": history or [],
                "model": model,
                "api_keys": api_keys or {},
            }
        )
        return await _get_orchestrator().refine(request)

    return await _run_tool("refine_translation", run)


@mcp.tool
async def summarize(
    text: str,
    target_lang: str | None = None,
    max_length: int = 500,
    include_sections: bool = False,
    model: str | None = None,
    api_keys: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Summarize text into a short summary and key points.

    Falls back to the leading sentences when no API key is given. With
    *target_lang*, the summary and key points are translated too.
    """

    async def run() -> Any:
        request = SummaryRequest.model_validate(
            {
                "text": text,
                "target_lang": target_lang,
                "max_length": max_length,
                "include_sections": include_sections,
                "model": model,
                "api_keys": api_keys or {},
            }
        )
        return await _get_orchestrator().summarizer.summarize_text(
            request.text,
            request.api_keys,
            target_lang=request.target_lang,
            max_length=request.max_length,
            include_sections=request.include_sections,
            provider=request.model,
        )

    return await _run_tool("summarize", run)


@mcp.tool
async def search_memory(
    text: str,
    source_lang: str | None = None,
    target_lang: str | None = None,
) -> dict[str, Any]:
    """Exact-match lookup of a source text in translation memory."""

    async def run() -> Any:
        return await _get_memory().search(
            text, source_lang=source_lang, target_lang=target_lang
        )

    return await _run_tool("search_memory", run)


@mcp.tool
async def rate_memory(entry_id: str, score: float) -> dict[str, Any]:
    """Set the 0-10 quality score of a memory entry."""

    async def run() -> Any:
        request = QualityUpdateRequest.model_validate({"score": score})
        entry = await _get_memory().update_quality(entry_id, request.score)
        if entry is None:
            raise InvalidRequestError(f"Memory entry {entry_id} not found")
        return entry

    return await _run_tool("rate_memory", run)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def serve(host: str, port: int) -> None:
    """Configure from the environment and serve HTTP on one event loop."""
    await configure(
        redis_url=os.environ.get("DUALTRANS_REDIS_URL"),
        neo4j_url=os.environ.get("DUALTRANS_NEO4J_URL"),
    )
    try:
        await mcp.run_async(transport="http", host=host, port=port)
    finally:
        await shutdown()


def main() -> None:
    """Run the server over HTTP using ``DUALTRANS_*`` environment variables."""
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("DUALTRANS_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(
        serve(
            os.environ.get("DUALTRANS_HTTP_HOST", "127.0.0.1"),
            int(os.environ.get("DUALTRANS_HTTP_PORT", "8787")),
        )
    )


if __name__ == "__main__":
    main()
