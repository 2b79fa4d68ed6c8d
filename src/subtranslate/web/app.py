from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from subtranslate.config import SubtranslateConfig
from subtranslate.env import load_dotenv_if_present
from subtranslate.errors import ConfigurationError, SubtitleNotFoundError, SubtranslateError
from subtranslate.orchestrator import TranslationOrchestrator


logger = logging.getLogger(__name__)

SRT_MEDIA_TYPE = "application/x-subrip; charset=utf-8"


def create_app(
    config: SubtranslateConfig | None = None,
    orchestrator: TranslationOrchestrator | None = None,
) -> FastAPI:
    """
    创建并配置 FastAPI 应用。

    - 未显式传入时，从 .env / 环境变量构造配置与调度器；
    - 启动时清理一次过期的 error 条目与历史任务；
    - 注册 /health、/translate 与 /status/{job_id}。
    """
    if orchestrator is None:
        load_dotenv_if_present()
        config = config or SubtranslateConfig.from_env()
        orchestrator = TranslationOrchestrator(config)
    config = orchestrator.config

    orchestrator.store.purge_stale(config.purge_after)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        # 进行中的任务不取消，只是不再等待
        orchestrator.shutdown(wait=False)

    app = FastAPI(
        title="subtranslate",
        description="On-demand subtitle translation with caching.",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    @app.get("/health", response_class=JSONResponse)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/translate")
    def translate(
        imdb_id: Optional[str] = None,
        season: Optional[str] = None,
        episode: Optional[str] = None,
        source: Optional[str] = None,
        to: Optional[str] = None,
        engine: Optional[str] = None,
    ) -> Response:
        """
        返回 SRT 文本：已缓存/原生字幕直接返回，否则返回占位字幕并在后台翻译。
        """
        if not imdb_id and not source:
            return JSONResponse({"error": "missing imdb_id or source"}, status_code=400)
        try:
            result = orchestrator.request(
                imdb_id=imdb_id,
                season=season,
                episode=episode,
                source_url=source,
                to=to,
                engine=engine,
            )
        except SubtitleNotFoundError as exc:
            return JSONResponse({"error": str(exc)}, status_code=404)
        except ConfigurationError as exc:
            logger.error("configuration error: %s", exc)
            return JSONResponse({"error": str(exc)}, status_code=500)
        except SubtranslateError as exc:
            logger.warning("translate request failed: %s", exc)
            return JSONResponse({"error": str(exc)}, status_code=502)

        headers = {"X-Subtranslate-Status": result.status}
        if result.job_id:
            headers["X-Subtranslate-Job"] = result.job_id
        return PlainTextResponse(result.srt, media_type=SRT_MEDIA_TYPE, headers=headers)

    @app.get("/status/{job_id}", response_class=JSONResponse)
    async def status(job_id: str) -> JSONResponse:
        job = orchestrator.get_job(job_id)
        if job is None:
            return JSONResponse({"error": "job not found"}, status_code=404)
        return JSONResponse(job.to_dict())

    return app


def main(host: str | None = None, port: int | None = None) -> None:
    """
    本地启动 Web 服务的入口。

    可通过环境变量控制监听地址与端口：
      - SUBTRANSLATE_WEB_HOST（默认 127.0.0.1）
      - SUBTRANSLATE_WEB_PORT（默认 3000）
    """
    import uvicorn

    load_dotenv_if_present()
    host = host or os.getenv("SUBTRANSLATE_WEB_HOST", "127.0.0.1")
    if port is None:
        try:
            port = int(os.getenv("SUBTRANSLATE_WEB_PORT", "3000"))
        except ValueError:
            port = 3000

    uvicorn.run("subtranslate.web.app:create_app", factory=True, host=host, port=port)
