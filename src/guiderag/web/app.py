"""FastAPI application exposing retrieval and prompt building."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from guiderag.config import AppConfig
from guiderag.models import SearchResult
from guiderag.service import GuideService

LOGGER = logging.getLogger(__name__)


class BuildPayload(BaseModel):
    text: str | None = None
    model: str | None = None
    outLang: str = "he"
    temperature: float | None = None
    top_p: float | None = None
    threshold: float | None = None


class SearchPayload(BaseModel):
    query: str
    top_k: int | None = None
    threshold: float | None = None


def _service(request: Request) -> GuideService:
    return request.app.state.service


def _serialize(results: List[SearchResult]) -> List[dict[str, Any]]:
    return [
        {"filename": result.filename, "snippet": result.snippet, "score": result.score}
        for result in results
    ]


def create_app(
    config: AppConfig | None = None, *, service: GuideService | None = None, watch: bool = True
) -> FastAPI:
    app = FastAPI(title="GuideRAG", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.service = service or GuideService(config or AppConfig.from_env())

    @app.on_event("startup")
    async def startup_event() -> None:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
        await asyncio.to_thread(app.state.service.start, watch=watch)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        app.state.service.stop()

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        LOGGER.warning("Invalid request body for %s: %s", request.url.path, errors)
        malformed = any(error.get("type") == "json_invalid" for error in errors)
        message = "Invalid JSON body" if malformed else "Invalid request body"
        return JSONResponse(status_code=400, content={"ok": False, "error": message})

    @app.get("/api/rules")
    async def get_rules(request: Request) -> dict[str, Any]:
        try:
            payload = await asyncio.to_thread(_service(request).rules)
        except Exception as exc:
            LOGGER.exception("Rule derivation failed")
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"ok": True, **payload}

    @app.post("/api/build")
    async def build(request: Request, payload: BuildPayload) -> Any:
        text = (payload.text or "").strip()
        if not text:
            return JSONResponse(
                status_code=400, content={"ok": False, "error": "Missing text in request"}
            )

        try:
            bundle = await asyncio.to_thread(
                _service(request).build_prompt,
                text,
                model=payload.model,
                temperature=payload.temperature,
                top_p=payload.top_p,
                threshold=payload.threshold,
            )
        except Exception as exc:
            LOGGER.exception("Prompt build failed")
            return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})

        return {
            "ok": True,
            "task": bundle.task.value,
            "classification": bundle.classification.to_dict(),
            "professionalPrompt": bundle.professional_prompt,
            "finalPrompt": bundle.final_prompt,
            "modelRecommendation": bundle.model_recommendation,
            "params": bundle.parameters,
            "outLang": payload.outLang,
            "retrieved": _serialize(bundle.retrieved),
        }

    @app.post("/api/search")
    async def search(request: Request, payload: SearchPayload) -> dict[str, Any]:
        top_k = None if payload.top_k is None else max(0, min(payload.top_k, 50))
        # Embedding ranking may run the model; keep it off the event loop.
        results = await asyncio.to_thread(
            _service(request).search, payload.query, top_k=top_k, threshold=payload.threshold
        )
        return {"results": _serialize(results)}

    @app.post("/api/reindex")
    async def reindex(request: Request) -> dict[str, Any]:
        service = _service(request)
        rebuilt = await asyncio.to_thread(service.rebuild)
        return {"ok": True, "rebuilt": rebuilt, "indexSize": service.index_size}

    return app
