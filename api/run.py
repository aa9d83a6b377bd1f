"""Prepara e inicia a API do Quadro localmente.

Etapas, na ordem:
1. Confere se as dependências da API estão instaladas no venv.
2. Testa a conexão com o banco configurado em QUADRO_DATABASE_URL.
3. Aplica as migrações Alembic até a head.
4. Sobe o uvicorn apontando para ``main:app``.

Cada etapa pode ser pulada ou executada isoladamente pelas flags da CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import logging
import pathlib
import sys
from typing import Iterable, Sequence

from alembic import command
from alembic.config import Config

BASE_DIR = pathlib.Path(__file__).resolve().parent

REQUIRED_PACKAGES: Iterable[str] = (
    "fastapi",
    "uvicorn",
    "sqlalchemy",
    "asyncpg",
    "alembic",
    "pydantic",
    "pydantic_settings",
    "argon2",
    "fastapi_mail",
    "itsdangerous",
)

logger = logging.getLogger("quadro.run")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Confere o ambiente, migra o banco e sobe a API do Quadro.",
    )
    parser.add_argument(
        "--skip-checks",
        action="store_true",
        help="Não confere dependências nem a conexão com o banco.",
    )
    parser.add_argument(
        "--skip-migrations",
        action="store_true",
        help="Não executa as migrações Alembic.",
    )
    parser.add_argument(
        "--check-only",
        action="store_true",
        help="Só confere dependências e banco, depois encerra.",
    )
    parser.add_argument(
        "--migrate-only",
        action="store_true",
        help="Confere o ambiente e migra, sem subir o servidor.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Host do uvicorn (padrão: 0.0.0.0).")
    parser.add_argument("--port", type=int, default=8000, help="Porta do uvicorn (padrão: 8000).")
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Desativa o recarregamento automático.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Nível de log deste script (padrão: INFO).",
    )

    args = parser.parse_args(argv)

    if args.check_only and args.migrate_only:
        parser.error("--check-only e --migrate-only não podem ser usados juntos.")

    return args


def verify_dependencies(packages: Iterable[str] = REQUIRED_PACKAGES) -> None:
    missing = []
    for package in packages:
        try:
            importlib.import_module(package)
        except ModuleNotFoundError:
            missing.append(package)

    if missing:
        raise RuntimeError(
            "Dependências ausentes: "
            + ", ".join(sorted(missing))
            + ". Rode `pip install -e .` na raiz do repositório."
        )

    logger.info("Dependências OK.")


def _load_settings():
    try:
        from quadro.core.config import settings  # import tardio para validar no runtime
    except Exception as exc:  # pragma: no cover - erro de configuração mostrado ao usuário
        raise RuntimeError(
            "Configuração inválida. Confira QUADRO_SESSION_SECRET (mínimo 16 caracteres) "
            "e QUADRO_DATABASE_URL."
        ) from exc
    return settings


def check_database() -> None:
    """Abre e fecha uma conexão só para falhar cedo com uma mensagem clara."""
    from sqlalchemy import text
    from sqlalchemy.ext.asyncio import create_async_engine

    database_url = str(_load_settings().database_url)

    async def _ping() -> None:
        engine = create_async_engine(database_url)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        finally:
            await engine.dispose()

    try:
        asyncio.run(_ping())
    except Exception as exc:
        raise RuntimeError(f"Não foi possível conectar no banco: {exc}") from exc

    logger.info("Banco de dados acessível.")


def run_migrations() -> None:
    alembic_ini = BASE_DIR / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"Arquivo Alembic não encontrado: {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(BASE_DIR / "alembic"))
    config.set_main_option("sqlalchemy.url", str(_load_settings().database_url))

    logger.info("Aplicando migrações...")
    command.upgrade(config, "head")
    logger.info("Banco na versão mais recente.")


def start_server(*, host: str, port: int, reload: bool) -> None:
    import uvicorn

    logger.info("Subindo a API em http://%s:%s", host, port)

    uvicorn_kwargs: dict[str, object] = {"reload": reload}
    if reload:
        uvicorn_kwargs.update(
            reload_delay=0.25,
            reload_dirs=[str(BASE_DIR / "quadro")],
        )

    uvicorn.run(
        "main:app",
        app_dir=str(BASE_DIR),
        host=host,
        port=port,
        **uvicorn_kwargs,
    )


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(message)s")

    if args.skip_checks:
        logger.info("Checagens puladas.")
    else:
        verify_dependencies()
        check_database()

    if args.check_only:
        return

    if args.skip_migrations:
        logger.info("Migrações puladas.")
    else:
        run_migrations()

    if args.migrate_only:
        return

    start_server(host=args.host, port=args.port, reload=not args.no_reload)


if __name__ == "__main__":
    try:
        main()
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:  # pragma: no cover - interação manual
        logger.info("Interrompido pelo usuário.")
        sys.exit(130)
