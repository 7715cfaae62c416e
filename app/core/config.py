"""
Configurações da aplicação.
Carrega variáveis de ambiente.
"""
import logging
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configurações carregadas do .env"""

    # App
    APP_NAME: str = "Motor de Campanhas"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    APP_ENV: str = "dev"  # PROD deve setar "production"

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    # Redis (lock distribuido entre workers)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Servico de ML (oraculo de pontuacao)
    ML_BASE_URL: str = "http://localhost:5000"
    ML_TIMEOUT_SEGUNDOS: float = 15.0
    ML_TENTATIVAS: int = 2  # Tentativas em erro de transporte (timeout, conexao)

    # Execucao de campanhas
    DISPATCH_WORKERS: int = 4  # Chamadas simultaneas ao servico de ML por execucao
    PROB_TOLERANCIA: float = 0.05  # Desvio aceito em probabilidade_sim + probabilidade_nao
    LOCK_BACKEND: str = "local"  # "local" (asyncio) | "redis"
    LOCK_TIMEOUT_SEGUNDOS: int = 900

    # Paginacao de leitura
    PAGINA_CLIENTES: int = 1000  # PostgREST limita respostas a 1000 linhas
    LOTE_IN_PREDICOES: int = 200  # IDs por filtro in() (limite de URL)

    # CORS - origens permitidas (separadas por vírgula)
    CORS_ORIGINS: str = "*"

    @property
    def is_production(self) -> bool:
        """Retorna True se está em produção (APP_ENV == 'production')."""
        return self.APP_ENV.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Retorna lista de origens CORS permitidas.

        Em produção, deve ser configurado explicitamente.
        """
        if self.CORS_ORIGINS == "*":
            if self.is_production:
                logging.warning(
                    "CORS_ORIGINS='*' em produção. "
                    "Configure origens específicas para maior segurança."
                )
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def dispatch_workers(self) -> int:
        """Tamanho do pool de workers (nunca menor que 1)."""
        return max(1, self.DISPATCH_WORKERS)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignora variáveis extras do .env


@lru_cache()
def get_settings() -> Settings:
    """Retorna settings cacheado."""
    return Settings()


settings = get_settings()
