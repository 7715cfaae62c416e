"""
Locks de exclusao por recurso.

Garante um unico escritor por campanha: execucao e recalculo de contadores
nunca rodam intercalados para a mesma campanha. Campanhas diferentes usam
chaves diferentes e rodam em paralelo.

Backends:
- LockLocal: asyncio.Lock por chave (um processo)
- DistributedLock: SET NX no Redis (varios workers/processos); expira
  sozinho, entao operacoes longas renovam com extend()

Uso:
    async with criar_lock(f"campanha:{campanha_id}"):
        await operacao_critica()
"""
import asyncio
import logging
import uuid
from typing import Any, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class LockNotAcquiredError(Exception):
    """Raised when lock cannot be acquired."""
    pass


class _LockBase:
    """Context manager comum aos backends."""

    key: str
    # TTL em segundos; None quando o lock nao expira sozinho
    ttl: Optional[int] = None

    async def acquire(self) -> bool:
        raise NotImplementedError

    async def release(self) -> bool:
        raise NotImplementedError

    async def extend(self, additional_time: Optional[int] = None) -> bool:
        """True enquanto este dono ainda segura o lock."""
        raise NotImplementedError

    async def __aenter__(self):
        """Context manager: adquire lock."""
        acquired = await self.acquire()
        if not acquired:
            raise LockNotAcquiredError(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager: libera lock."""
        await self.release()
        return False  # Não suprime exceções


class RegistroLocksLocais:
    """Um asyncio.Lock por chave, criado sob demanda."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def obter(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def descartar(self, key: str) -> None:
        """Remove o lock da chave se ninguem estiver segurando."""
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def ocupado(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()


class LockLocal(_LockBase):
    """
    Lock nao bloqueante dentro do processo.

    Se a chave ja estiver em uso, acquire() retorna False na hora.
    """

    def __init__(self, key: str, registro: RegistroLocksLocais):
        self.key = f"lock:{key}"
        self._registro = registro
        self._acquired = False

    async def acquire(self) -> bool:
        lock = self._registro.obter(self.key)
        if lock.locked():
            return False
        # Lock livre: acquire() retorna sem ceder o loop
        await lock.acquire()
        self._acquired = True
        logger.debug(f"[LockLocal] Lock adquirido: {self.key}")
        return True

    async def release(self) -> bool:
        if not self._acquired:
            return True
        self._registro.obter(self.key).release()
        self._registro.descartar(self.key)
        self._acquired = False
        logger.debug(f"[LockLocal] Lock liberado: {self.key}")
        return True

    async def extend(self, additional_time: Optional[int] = None) -> bool:
        return self._acquired


class DistributedLock(_LockBase):
    """
    Lock distribuído usando Redis.

    Implementa o padrão Redlock simplificado:
    - SET NX (set if not exists) para adquirir
    - Lua script para liberar e renovar de forma segura

    Attributes:
        key: Nome do recurso sendo bloqueado
        timeout: TTL do lock em segundos (previne locks órfãos)
        token: Token único para identificar este lock holder
    """

    _LUA_RELEASE = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    _LUA_EXTEND = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("expire", KEYS[1], ARGV[2])
    else
        return 0
    end
    """

    def __init__(self, key: str, timeout: int = 300, redis: Optional[Any] = None):
        """
        Args:
            key: Nome do recurso a bloquear
            timeout: TTL do lock em segundos (default 5 min)
            redis: Cliente redis.asyncio (default: cliente global)
        """
        self.key = f"lock:{key}"
        self.timeout = timeout
        self.ttl = timeout
        self.token = str(uuid.uuid4())
        self._redis = redis
        self._acquired = False

    @property
    def redis(self):
        if self._redis is None:
            from app.services.redis import get_redis_client

            self._redis = get_redis_client()
        return self._redis

    async def acquire(self) -> bool:
        """
        Tenta adquirir o lock uma vez.

        Returns:
            True se adquiriu, False se outro dono ja tem o lock

        Raises:
            Erros de conexao do Redis (sem Redis nao ha garantia de exclusao)
        """
        result = await self.redis.set(self.key, self.token, nx=True, ex=self.timeout)
        self._acquired = bool(result)
        if self._acquired:
            logger.debug(f"[DistributedLock] Lock adquirido: {self.key}")
        return self._acquired

    async def release(self) -> bool:
        """
        Libera o lock de forma segura.

        Usa Lua script para garantir que só libera se ainda for o dono.

        Returns:
            True se liberou, False se já tinha expirado ou não era dono
        """
        if not self._acquired:
            return True

        try:
            result = await self.redis.eval(self._LUA_RELEASE, 1, self.key, self.token)
            released = result == 1
            if released:
                logger.debug(f"[DistributedLock] Lock liberado: {self.key}")
            else:
                logger.warning(f"[DistributedLock] Lock expirou antes de liberar: {self.key}")
            return released
        except Exception as e:
            logger.error(f"[DistributedLock] Erro ao liberar lock: {e}")
            return False
        finally:
            self._acquired = False

    async def extend(self, additional_time: Optional[int] = None) -> bool:
        """
        Estende o TTL do lock se ainda for dono.

        Args:
            additional_time: Segundos adicionais (default: timeout original)

        Returns:
            True se estendeu, False se o lock expirou ou mudou de dono
        """
        if not self._acquired:
            return False

        ttl = additional_time or self.timeout
        try:
            result = await self.redis.eval(self._LUA_EXTEND, 1, self.key, self.token, ttl)
            return result == 1
        except Exception as e:
            logger.error(f"[DistributedLock] Erro ao estender lock: {e}")
            return False


_registro_local = RegistroLocksLocais()


def criar_lock(
    key: str,
    backend: Optional[str] = None,
    registro: Optional[RegistroLocksLocais] = None,
) -> _LockBase:
    """
    Cria lock para o recurso usando o backend configurado.

    Args:
        key: Nome do recurso (ex: "campanha:123")
        backend: "local" ou "redis" (default: settings.LOCK_BACKEND)
        registro: Registro local a usar (default: registro do processo)
    """
    backend = (backend or settings.LOCK_BACKEND).lower()
    if backend == "redis":
        return DistributedLock(key, timeout=settings.LOCK_TIMEOUT_SEGUNDOS)
    return LockLocal(key, registro or _registro_local)
