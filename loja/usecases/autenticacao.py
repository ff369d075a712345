"""
UC: Autenticação e sessão.

- verificar_login(): delega a comparação de credenciais ao banco.
- SessionStore: estado Anonimo/Autenticado persistido em arquivo JSON,
  com validade (24h por padrão), de onde sai o ``Ator`` passado a todas as
  operações de escrita.

Obs.:
- Credencial inválida retorna False; falha do banco levanta
  ``BancoIndisponivel`` (nunca vira "senha errada").
- Sessões em processos diferentes não se sincronizam; toda escrita revalida
  o ator no banco via escopo e carimbo.
"""

from __future__ import annotations

import json
import os
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from loja.config import DB_PATH, DEFAULTS, SESSION_PATH
from loja.domain.errors import SessaoExpirada
from loja.domain.models import Ator, Usuario
from loja.infra import db as banco
from loja.infra.db import connect
from loja.infra.logger import log_auth, log_system_event
from loja.infra.repositories import UsuarioRepo


def verificar_login(username: str, password: str, db_path: str = DB_PATH) -> bool:
    """Retorna True se usuário e senha conferem (comparação feita no banco)."""
    if not username or not password:
        return False
    with connect(db_path, existente=True) as c:
        ok = banco.verify_login(c, username.strip(), password)
    log_auth("verify", username, level="info" if ok else "warning", ok=ok)
    return ok


def buscar_usuario(username: str, db_path: str = DB_PATH) -> Optional[Usuario]:
    with connect(db_path, existente=True) as c:
        return UsuarioRepo(c).por_username(username)


class EstadoSessao(str, Enum):
    ANONIMO = "Anonimo"
    AUTENTICADO = "Autenticado"


class SessionStore:
    """Fonte única de "quem está agindo", persistida entre execuções."""

    def __init__(
        self,
        db_path: str = DB_PATH,
        caminho: str = SESSION_PATH,
        ttl_horas: Optional[float] = None,
        relogio: Callable[[], float] = time.time,
    ):
        self.db_path = db_path
        self.caminho = Path(caminho)
        self.ttl_segundos = float(ttl_horas if ttl_horas is not None else DEFAULTS.sessao_ttl_horas) * 3600
        self.relogio = relogio
        self.username: Optional[str] = None
        self.dados: Optional[Dict[str, Any]] = None
        self._carregar()

    # --------- estado ---------
    @property
    def estado(self) -> EstadoSessao:
        return EstadoSessao.AUTENTICADO if self.username else EstadoSessao.ANONIMO

    @property
    def autenticado(self) -> bool:
        return self.estado is EstadoSessao.AUTENTICADO

    def ator(self) -> Ator:
        """Identidade explícita do usuário logado."""
        if not self.autenticado:
            raise SessaoExpirada()
        if self.dados is None:
            self._recarregar_dados()
            if not self.autenticado:
                raise SessaoExpirada()
        dados = self.dados or {}
        return Ator(
            username=self.username,
            tenant_id=dados.get("tenant_id"),
            is_admin=bool(dados.get("is_admin")),
        )

    # --------- transições ---------
    def login(self, username: str, password: str) -> bool:
        """Anonimo -> Autenticado somente se o banco confirmar a credencial."""
        if not verificar_login(username, password, self.db_path):
            log_auth("login_failed", username, level="warning")
            return False
        self.username = username.strip()
        self.dados = None
        self._recarregar_dados()
        if not self.autenticado:
            return False
        self._persistir()
        log_auth("login", self.username, tenant_id=(self.dados or {}).get("tenant_id"))
        return True

    def logout(self) -> None:
        log_auth("logout", self.username)
        self.username = None
        self.dados = None
        try:
            self.caminho.unlink()
        except FileNotFoundError:
            pass

    # --------- persistência ---------
    def _persistir(self) -> None:
        self.caminho.parent.mkdir(parents=True, exist_ok=True)
        payload = {"username": self.username, "timestamp": self.relogio(), "dados": self.dados}
        tmp = self.caminho.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.caminho)

    def _carregar(self) -> None:
        if not self.caminho.exists():
            return
        try:
            payload = json.loads(self.caminho.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log_system_event("sessao_corrompida", {"erro": str(e)}, level="warning")
            self.logout()
            return
        timestamp = float(payload.get("timestamp") or 0)
        if self.relogio() - timestamp >= self.ttl_segundos or not payload.get("username"):
            log_auth("session_expired", payload.get("username"))
            self.logout()
            return
        # autenticado de forma otimista; dados vêm do cache ou do banco
        self.username = payload["username"]
        self.dados = payload.get("dados")
        log_auth("session_restored", self.username, cached=self.dados is not None)

    def _recarregar_dados(self) -> None:
        usuario = buscar_usuario(self.username, self.db_path)
        if usuario is None:
            log_auth("user_missing", self.username, level="warning")
            self.logout()
            return
        self.dados = {
            "id": usuario.id,
            "tenant_id": usuario.tenant_id,
            "is_admin": bool(usuario.is_admin),
        }
        if self.caminho.exists():
            self._persistir()
