import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from quadro.db.session import engine

logger = logging.getLogger("quadro.lifespan")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("Conexão com o banco estabelecida")
    except Exception as exc:  # pragma: no cover - diagnóstico de startup
        logger.exception("Falha ao conectar no banco de dados", exc_info=exc)
        raise

    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Conexão com o banco encerrada")
