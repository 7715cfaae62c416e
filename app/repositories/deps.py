"""
Dependency Injection para Repositories.

Este modulo fornece funcoes de dependencia para uso com FastAPI Depends.

Uso em endpoints:
    from app.repositories.deps import get_cliente_repo
    from app.repositories.cliente import ClienteRepository

    @router.get("/clientes/{id}")
    async def get_cliente(
        id: str,
        repo: ClienteRepository = Depends(get_cliente_repo)
    ):
        return await repo.buscar_por_id(id)

Uso em testes:
    repo = create_cliente_repo(criar_mock_supabase([...]))
"""
from functools import lru_cache

from app.core.config import settings
from app.services.supabase import get_supabase_client
from .cliente import ClienteRepository


@lru_cache()
def get_cliente_repo() -> ClienteRepository:
    """Retorna instancia singleton do ClienteRepository."""
    return ClienteRepository(get_supabase_client(), tamanho_pagina=settings.PAGINA_CLIENTES)


@lru_cache()
def get_predicao_repo():
    """Retorna instancia singleton do PredicaoRepository."""
    from app.services.predicoes.repository import PredicaoRepository

    return PredicaoRepository(
        get_supabase_client(),
        tamanho_pagina=settings.PAGINA_CLIENTES,
        lote_in=settings.LOTE_IN_PREDICOES,
    )


@lru_cache()
def get_campanha_repo():
    """Retorna instancia singleton do CampanhaRepository."""
    from app.services.campanhas.repository import CampanhaRepository

    return CampanhaRepository(get_supabase_client())


# Factory functions para testes
def create_cliente_repo(db_client, tamanho_pagina: int = 1000) -> ClienteRepository:
    """
    Cria ClienteRepository com cliente de banco customizado.

    Util para testes:
        repo = create_cliente_repo(criar_mock_supabase([...]))
    """
    return ClienteRepository(db_client, tamanho_pagina=tamanho_pagina)
