"""
Extraction worker process.

Serves the extraction contract over a Unix domain socket (``--uds``) or TCP:

* ``POST`` any path, raw HTML body, ``X-Document-URL`` header
* ``200`` with the article object, or ``null`` when there is no article
* ``400`` for an empty body, ``405`` for other methods
* ``500`` with ``{"error", "details"}`` when extraction fails
"""

from __future__ import annotations

import os
from typing import Optional

import click
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool

from cleanread import __version__
from cleanread.extractor.readability_backend import extract_article

logger = structlog.get_logger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def create_app() -> FastAPI:
    app = FastAPI(title="CleanRead extraction worker", version=__version__, docs_url=None, redoc_url=None)

    @app.api_route("/{path:path}", methods=ALL_METHODS)
    async def extract(request: Request, path: str) -> JSONResponse:
        if request.method != "POST":
            return JSONResponse({"error": "Method Not Allowed"}, status_code=405, headers={"Allow": "POST"})

        body = await request.body()
        if not body:
            return JSONResponse({"error": "Request body cannot be empty"}, status_code=400)

        url = request.headers.get("x-document-url") or None
        try:
            article = await run_in_threadpool(extract_article, body, url)
        except Exception as e:  # noqa: BLE001
            logger.error("Extraction failed", url=url, error=str(e), exc_info=True)
            return JSONResponse({"error": "Processing Failed", "details": str(e)}, status_code=500)

        if article is None:
            return JSONResponse(None)
        return JSONResponse(article.to_payload())

    return app


app = create_app()


@click.command()
@click.option("--uds", type=click.Path(dir_okay=False), default=None, help="Listen on this Unix socket.")
@click.option("--grace", type=float, default=0.5, show_default=True, help="Graceful shutdown timeout in seconds.")
@click.option("--log-level", default="warning", show_default=True)
def main(uds: Optional[str], grace: float, log_level: str) -> None:
    """Run the extraction worker until SIGTERM or SIGINT."""
    if uds:
        uvicorn.run(app, uds=uds, timeout_graceful_shutdown=grace, log_level=log_level)
        return

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "3000"))
    uvicorn.run(app, host=host, port=port, timeout_graceful_shutdown=grace, log_level=log_level)


if __name__ == "__main__":
    main()
