from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from query_builder.api.helpers import _error_payload, _exc_meta
from query_builder.api.routers import filters, rules
from query_builder.errors import BuilderLookupError, ConfigError
from query_builder.logger.logging_setup import setup_logging

_LOG = logging.getLogger("query_builder.main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    _LOG.info("Query builder service starting")
    yield


app = FastAPI(lifespan=lifespan)


@app.exception_handler(ConfigError)
async def _config_error_handler(_: Request, exc: ConfigError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": _error_payload(
                "CONFIG_INVALID", str(exc), **_exc_meta(exc)
            )
        },
    )


@app.exception_handler(BuilderLookupError)
async def _lookup_error_handler(_: Request, exc: BuilderLookupError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": _error_payload("NOT_FOUND", str(exc), **_exc_meta(exc))},
    )


app.include_router(filters.router)
app.include_router(rules.router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("query_builder.main:app", host="127.0.0.1", port=8000, reload=True)
