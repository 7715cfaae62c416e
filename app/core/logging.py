"""
Configuração de logging estruturado.

Em produção: JSON para facilitar parsing por ferramentas de log
Em desenvolvimento: Formato legível para humanos

Campos extras (ex: categoria_falha, campanha_id) vão em extra={"extra_fields": {...}}
e aparecem no JSON de produção.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Union


class JSONFormatter(logging.Formatter):
    """Formatter que gera logs em formato JSON para produção."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_data.update(extra_fields)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Formatter colorido para desenvolvimento."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            texto = super().format(record)
        finally:
            record.levelname = levelname

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            pares = " ".join(f"{k}={v}" for k, v in extra_fields.items())
            texto = f"{texto} | {pares}"
        return texto


class _ContextAdapter(logging.LoggerAdapter):
    """Anexa campos fixos de contexto em extra_fields."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        campos = dict(self.extra)
        campos.update(extra.get("extra_fields", {}))
        extra["extra_fields"] = campos
        return msg, kwargs


def get_logger(name: str, **extra_fields: Any) -> Union[logging.Logger, logging.LoggerAdapter]:
    """
    Retorna logger com campos extras opcionais.

    Usage:
        logger = get_logger(__name__, campanha_id="123")
        logger.info("Iniciando execucao")
    """
    logger = logging.getLogger(name)
    if extra_fields:
        return _ContextAdapter(logger, extra_fields)
    return logger


def setup_logging():
    """Configura logging da aplicação baseado no ambiente."""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if environment == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ColoredFormatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Reduzir verbosidade de libs externas
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
