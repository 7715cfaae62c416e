"""
Repositories - Camada de acesso a dados.

Este modulo implementa o padrao Repository para desacoplar
a logica de negocio do banco de dados.

Uso com dependency injection:
    from fastapi import Depends
    from app.repositories import ClienteRepository
    from app.repositories.deps import get_cliente_repo

Entidades disponiveis:
- Cliente: Registro da base de marketing (somente leitura para o motor)

Repositories de campanhas e predicoes ficam nos seus servicos
(app.services.campanhas, app.services.predicoes) e herdam BaseRepository.
"""

from .base import BaseRepository, FiltroNativo
from .cliente import Cliente, ClienteRepository
from .deps import create_cliente_repo, get_cliente_repo

__all__ = [
    # Base
    "BaseRepository",
    "FiltroNativo",
    # Cliente
    "ClienteRepository",
    "Cliente",
    # Dependency injection
    "get_cliente_repo",
    "create_cliente_repo",
]
