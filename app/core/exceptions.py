"""
Exceptions customizadas do motor de campanhas.

Categorias de falha em uma execucao:
- MapeamentoError: cliente nao pode ser convertido em payload (pula o alvo)
- OraculoError: servico de ML falhou ou respondeu algo invalido (pula o alvo)
- DatabaseError: leitura/escrita no banco falhou (propaga, contadores intactos)
"""
from typing import Optional


class MotorException(Exception):
    """Base exception para todos os erros do sistema."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DatabaseError(MotorException):
    """Erro de banco de dados (Supabase)."""
    pass


class ExternalAPIError(MotorException):
    """Erro de API externa."""

    def __init__(
        self,
        message: str,
        service: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.service = service
        super().__init__(message, details, original_error)


class OraculoError(ExternalAPIError):
    """Falha ao pontuar no servico de ML (timeout, HTTP != 2xx, corpo invalido)."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, "ml", details, original_error)


class ValidationError(MotorException):
    """Erro de validacao de dados de entrada."""
    pass


class MapeamentoError(MotorException):
    """Cliente sem os campos numericos exigidos pelo payload do ML."""

    def __init__(self, campo: str, cliente_id: Optional[str] = None, valor=None):
        details = {"campo": campo}
        if cliente_id:
            details["cliente_id"] = cliente_id
        if valor is not None:
            details["valor"] = repr(valor)
        super().__init__(f"Campo {campo} ausente ou invalido", details)
        self.campo = campo


class NotFoundError(MotorException):
    """Recurso nao encontrado."""

    def __init__(
        self,
        resource: str,
        identifier: Optional[str] = None
    ):
        message = f"{resource} nao encontrado"
        details = {}
        if identifier:
            details["id"] = identifier
        super().__init__(message, details)


class CampanhaEmExecucaoError(MotorException):
    """Ja existe execucao/recalculo em andamento para a campanha."""

    def __init__(self, campanha_id: str):
        super().__init__("Campanha ja esta em execucao", {"campanha_id": campanha_id})
        self.campanha_id = campanha_id


class ConfigurationError(MotorException):
    """Erro de configuracao do sistema."""
    pass
