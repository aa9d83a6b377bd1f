"""Quadro: quadros kanban por projeto, com membros e convites por email."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("quadro-api")
except PackageNotFoundError:  # pragma: no cover - rodando direto do checkout
    __version__ = "0.0.0+local"
