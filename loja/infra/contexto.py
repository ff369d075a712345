"""
Propagação do usuário atual para o banco.

Os triggers de auditoria leem ``current_setting('app.current_user')`` para
atribuir cada alteração. O carimbo precisa acontecer na mesma conexão (e
na mesma transação) da escrita que ele protege; por isso as escritas usam
``sessao_do_ator``, que abre a conexão, carimba e só então entrega a
conexão ao caso de uso.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from loja.domain.errors import ContextoNaoDefinido, SessaoExpirada
from loja.domain.models import Ator
from loja.infra.db import ConexaoLoja, connect, set_session_variable
from loja.infra.logger import log_system_event

VARIAVEL_USUARIO = "app.current_user"


def stamp_session(conn: ConexaoLoja, username: Optional[str]) -> None:
    """Carimba o usuário atual na conexão, local à transação corrente."""
    if not username:
        log_system_event("stamp_session_sem_usuario", level="warning")
        raise SessaoExpirada()
    set_session_variable(conn, VARIAVEL_USUARIO, username, local=True)
    log_system_event("stamp_session", {"username": username}, level="debug")


def usuario_carimbado(conn: ConexaoLoja) -> Optional[str]:
    return conn.variaveis.get(VARIAVEL_USUARIO)


def exigir_carimbo(conn: ConexaoLoja) -> str:
    """Usado pelo executor antes de qualquer INSERT/UPDATE/DELETE."""
    username = usuario_carimbado(conn)
    if not username:
        raise ContextoNaoDefinido()
    return username


@contextmanager
def sessao_do_ator(db_path: str, ator: Ator) -> Iterator[ConexaoLoja]:
    """Unidade de trabalho de escrita: uma conexão, uma transação, ator carimbado."""
    with connect(db_path) as conn:
        stamp_session(conn, ator.username)
        yield conn
