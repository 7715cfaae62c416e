"""
Módulo centralizado para tratamento de timezone.

Tudo que é persistido ou agregado usa UTC. Datetimes naive são
interpretados como UTC (é o que o banco devolve em colunas sem tz).

Convenções:
- `agora_utc()`: Para armazenar no banco
- `para_utc(dt)`: Normalizar datetime (naive ou aware) para UTC
- `parse_timestamp(valor)`: Aceita datetime ou string ISO 8601
- `iso_utc(dt)`: String ISO para inserir no banco
"""

from datetime import datetime, timezone
from typing import Union

from dateutil.parser import isoparse


TZ_UTC = timezone.utc


def agora_utc() -> datetime:
    """
    Retorna datetime atual em UTC (timezone-aware).

    Returns:
        datetime em UTC com tzinfo
    """
    return datetime.now(TZ_UTC)


def para_utc(dt: datetime) -> datetime:
    """
    Converte datetime para UTC.

    Args:
        dt: datetime a converter (naive é tratado como UTC)

    Returns:
        datetime em UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=TZ_UTC)
    return dt.astimezone(TZ_UTC)


def parse_timestamp(valor: Union[str, datetime]) -> datetime:
    """
    Converte timestamp do banco (string ISO ou datetime) para datetime UTC.

    Raises:
        ValueError: Se a string nao for ISO 8601
        TypeError: Se o valor nao for string nem datetime
    """
    if isinstance(valor, datetime):
        return para_utc(valor)
    if isinstance(valor, str):
        return para_utc(isoparse(valor))
    raise TypeError(f"Timestamp invalido: {valor!r}")


def iso_utc(dt: datetime | None = None) -> str:
    """
    Retorna datetime em formato ISO 8601 UTC.

    Args:
        dt: datetime a formatar (padrão: agora)

    Returns:
        String ISO 8601 em UTC
    """
    if dt is None:
        dt = agora_utc()
    return para_utc(dt).isoformat()
